from enum import IntEnum
from typing import Optional
from typing import Union

from spfluent.lib import error
from spfluent.pipeline import then
from spfluent.protocol.constants import MAX_COMMENT_LENGTH
from spfluent.protocol.odata import BytesParser
from spfluent.protocol.odata import TextParser
from spfluent.queryable import QueryableCollection
from spfluent.queryable import QueryableInstance


class CheckinType(IntEnum):
    MINOR = 0
    MAJOR = 1
    OVERWRITE = 2


def _check_comment(comment: str) -> None:
    if len(comment) > MAX_COMMENT_LENGTH:
        raise error.MaxCommentLengthException()


class Folder(QueryableInstance):
    @property
    def files(self) -> "Files":
        return Files(self)


class Files(QueryableCollection):
    def __init__(self, base_url, path: Optional[str] = "files") -> None:
        super().__init__(base_url, path)

    def get_by_name(self, name: str) -> "File":
        f = File(self)
        f.concat(f"('{name}')")
        return f

    def add(self, url: str, content: Union[str, bytes], should_overwrite: bool = True):
        """
        Uploads a file into the folder.  Resolves to a dict holding the
        ``data`` of the new file and a ``file`` to continue with.
        """
        overwrite = "true" if should_overwrite else "false"
        future = Files(self, f"add(overwrite={overwrite},url='{url}')").post_core({"body": content})
        return then(future, lambda data: {"data": data, "file": self.get_by_name(url)})


class File(QueryableInstance):
    """
    A file in a document library.  The methods taking a comment raise
    MaxCommentLengthException before sending anything if the comment
    is longer than 1023 characters.
    """

    def approve(self, comment: str = ""):
        return self.clone(File, f"approve(comment='{comment}')").post_core()

    def checkin(self, comment: str = "", checkin_type: CheckinType = CheckinType.MAJOR):
        _check_comment(comment)
        return self.clone(
            File, f"checkin(comment='{comment}',checkintype={int(checkin_type)})"
        ).post_core()

    def checkout(self):
        return self.clone(File, "checkout").post_core()

    def undo_checkout(self):
        return self.clone(File, "undoCheckout").post_core()

    def deny(self, comment: str = ""):
        _check_comment(comment)
        return self.clone(File, f"deny(comment='{comment}')").post_core()

    def publish(self, comment: str = ""):
        _check_comment(comment)
        return self.clone(File, f"publish(comment='{comment}')").post_core()

    def unpublish(self, comment: str = ""):
        _check_comment(comment)
        return self.clone(File, f"unpublish(comment='{comment}')").post_core()

    def delete(self, etag: str = "*"):
        return self.clone(File, None).post_core(
            {"headers": {"IF-Match": etag, "X-HTTP-Method": "DELETE"}}
        )

    def get_text(self):
        return self.clone(File, "$value", False).get(
            TextParser(), {"headers": {"binaryStringResponseBody": "true"}}
        )

    def get_bytes(self):
        return self.clone(File, "$value", False).get(
            BytesParser(), {"headers": {"binaryStringResponseBody": "true"}}
        )
