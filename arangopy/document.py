# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from arangopy.exceptions import DocumentIdException, DocumentPreconditionException
from arangopy.settings.defaults import (
    DOCUMENT_REVISION_PARAM,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_PRECONDITION_FAILED,
    HTTP_STATUS_SERVER_ERROR_MIN,
    RESOURCE_KIND_DOCUMENT,
)
from arangopy.utils.request_tools import HttpMethod

if TYPE_CHECKING:
    from arangopy.database import Database

logger = logging.getLogger(__name__)


def _split_document_id(document_id: str) -> tuple[str, str]:
    segments = document_id.split("/")
    if len(segments) != 2 or not all(segments):
        raise DocumentIdException(
            f"Invalid document id '{document_id}': "
            "expected the form '<collection>/<key>'."
        )
    return segments[0], segments[1]


def _ensure_database(database: Database | None) -> Database:
    if database is None:
        raise ValueError("A database is required for this operation.")
    return database


class Document:
    """
    The identity of a stored document: its id ("<collection>/<key>"), key and
    revision, along with the inline error echoed by the server when a request
    about this document fails.

    A Document answers point-in-time questions about the stored record
    (does it exist? was it changed?) with a single read request each.

    Two documents are equal when their wire representations (see `to_dict`)
    are. Since revision and error fields change over time, documents are
    not hashable: use their `id` as key in sets and dictionaries.

    Args:
        id: the document id, of the form "<collection>/<key>".

    Example:
        >>> document = Document("users/alice")
        >>> document.key
        'alice'
        >>> document.exist(database)
        True
        >>> document.set_revision("_hV8xPZK---")
        >>> document.updated(database)
        False
    """

    id: str
    revision: str
    key: str
    errored: bool
    message: str
    code: int
    error_num: int

    def __init__(self, id: str) -> None:
        _, key = _split_document_id(id)
        self.id = id
        self.key = key
        self.revision = ""
        self.errored = False
        self.message = ""
        self.code = 0
        self.error_num = 0

    def __repr__(self) -> str:
        pieces = [
            pc
            for pc in (
                f"id={self.id.__repr__()}",
                f"revision={self.revision.__repr__()}" if self.revision else None,
                f"key={self.key.__repr__()}" if self.key != self._id_key() else None,
                f"error_num={self.error_num}" if self.errored else None,
            )
            if pc is not None
        ]
        return f"{self.__class__.__name__}({', '.join(pieces)})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Document):
            return self.to_dict() == other.to_dict()
        return False

    __hash__ = None  # type: ignore[assignment]

    def _id_key(self) -> str:
        return self.id.split("/")[-1]

    @classmethod
    def from_dict(cls, raw_dict: dict[str, Any]) -> Document:
        """
        Create a Document from its wire representation, i.e. a dictionary
        with the "_id" field and optionally "_rev", "_key" and error fields.
        This makes the class usable as `row_type` for cursors returning documents.
        """

        document = cls(raw_dict["_id"])
        if raw_dict.get("_rev"):
            document.revision = raw_dict["_rev"]
        if raw_dict.get("_key"):
            document.key = raw_dict["_key"]
        document.apply_error(raw_dict)
        return document

    def to_dict(self) -> dict[str, Any]:
        """The wire representation of the document, with empty fields omitted."""

        return {
            k: v
            for k, v in {
                "_id": self.id,
                "_rev": self.revision,
                "_key": self.key,
                "error": self.errored,
                "errorMessage": self.message,
                "code": self.code,
                "errorNum": self.error_num,
            }.items()
            if v
        }

    def apply_error(self, response_body: dict[str, Any]) -> None:
        """Copy the inline error fields of a response body onto this document."""

        if "error" in response_body:
            self.errored = bool(response_body["error"])
        if "errorMessage" in response_body:
            self.message = response_body["errorMessage"] or ""
        if "code" in response_body:
            self.code = response_body["code"] or 0
        if "errorNum" in response_body:
            self.error_num = response_body["errorNum"] or 0

    def updated(self, database: Database | None) -> bool:
        """
        Check whether the stored document differs from the revision known
        to this object, i.e. it was changed or removed in the meantime.

        Args:
            database: the Database the document lives in.

        Returns:
            True if the document is gone (HTTP 404) or its revision differs
            (HTTP 412), False for any other response.

        Raises:
            DocumentPreconditionException: if the document has no id or no
                revision. No request is issued in this case.
        """

        _database = _ensure_database(database)
        if not self.id or not self.revision:
            raise DocumentPreconditionException(
                "Document must have a valid id and revision."
            )
        response = _database.get(
            RESOURCE_KIND_DOCUMENT,
            self.id,
            HttpMethod.GET,
            request_params={DOCUMENT_REVISION_PARAM: self.revision},
        )
        if response.status_code >= 400:
            self.apply_error(response.body)
        return response.status_code in {
            HTTP_STATUS_NOT_FOUND,
            HTTP_STATUS_PRECONDITION_FAILED,
        }

    def exist(self, database: Database | None) -> bool:
        """
        Check whether the document exists in the database.

        Any response other than HTTP 404 counts as the document existing,
        including server errors (which are logged as warnings).

        Args:
            database: the Database the document lives in.

        Returns:
            False if the server answered HTTP 404, True otherwise.

        Raises:
            DocumentPreconditionException: if the document has no id.
                No request is issued in this case.
        """

        _database = _ensure_database(database)
        if not self.id:
            raise DocumentPreconditionException("Document must have a valid id.")
        response = _database.get(
            RESOURCE_KIND_DOCUMENT,
            self.id,
            HttpMethod.GET,
        )
        if response.status_code >= 400:
            self.apply_error(response.body)
        if response.status_code >= HTTP_STATUS_SERVER_ERROR_MIN:
            logger.warning(
                f"existence check for document '{self.id}' got status code "
                f"{response.status_code}: reporting the document as existing"
            )
        return response.status_code != HTTP_STATUS_NOT_FOUND

    def set_key(self, key: str) -> None:
        # no validation
        self.key = key

    def set_revision(self, revision: str) -> None:
        # no validation
        self.revision = revision
