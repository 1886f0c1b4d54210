from spfluent import __version__

DEFAULT_ACCEPT = "application/json"
VERBOSE_ACCEPT = "application/json;odata=verbose"
VERBOSE_CONTENT_TYPE = "application/json;odata=verbose;charset=utf-8"
NOMETADATA_ACCEPT = "application/json;odata=nometadata"

## marks the requests for understanding by the service
CLIENT_TAG = f"spfluent-python:{__version__}"
USER_AGENT = f"NONISV|spfluent|spfluent-python/{__version__}"

## statuses on which a request is retried
RETRY_STATUSES = (429, 503)
MAX_COMMENT_LENGTH = 1023
