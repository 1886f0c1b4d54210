#!/usr/bin/env python
import logging

__version__ = "1.0.5"

from .batch import SPBatch
from .config import setup
from .http import SPHttpClient
from .queryable import Queryable
from .queryable import QueryableCollection
from .queryable import QueryableInstance
from .resources.rest import sp
from .resources.rest import SPRest

## We should consider if the NullHandler-logic below is needed or not, and
## if there are better alternatives?
# Silence notification of no default logging handler
log = logging.getLogger("spfluent")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "Queryable",
    "QueryableCollection",
    "QueryableInstance",
    "SPBatch",
    "SPHttpClient",
    "SPRest",
    "setup",
    "sp",
]
