#!/usr/bin/env python
# -*- encoding: utf-8 -*-
"""
Unit tests for building $batch request bodies and splitting $batch
responses.  These are pure functions, no I/O involved.
"""
import itertools

import pytest

from fixture_helpers import batch_response_text
from spfluent.lib.error import BatchParseException
from spfluent.protocol.multipart import batch_content_type
from spfluent.protocol.multipart import build_batch_body
from spfluent.protocol.multipart import parse_batch_response
from spfluent.protocol.types import BatchRequest

WEB = "https://contoso/sites/dev"


def request(method, url, headers=None, body=None) -> BatchRequest:
    options = {}
    if headers:
        options["headers"] = headers
    if body:
        options["body"] = body
    return BatchRequest(url, method, options, None, "id", None)


def changeset_ids():
    counter = itertools.count(1)
    return lambda: f"cs{next(counter)}"


def boundaries(body: str):
    return [line for line in body.split("\n") if line.startswith("--")]


class TestBuildBatchBody:
    def test_changesets(self) -> None:
        body = build_batch_body(
            "B",
            [
                request("GET", "_api/a"),
                request("POST", "_api/b", body='{"x": 1}'),
                request("POST", "_api/c"),
                request("GET", "_api/d"),
                request("PATCH", "_api/e", headers={"X-HTTP-Method": "MERGE"}),
            ],
            WEB,
            guid_factory=changeset_ids(),
        )
        assert boundaries(body) == [
            "--batch_B",
            "--batch_B",
            "--changeset_cs1",
            "--changeset_cs1",
            "--changeset_cs1--",
            "--batch_B",
            "--batch_B",
            "--changeset_cs2",
            "--changeset_cs2--",
            "--batch_B--",
        ]
        assert 'Content-Type: multipart/mixed; boundary="changeset_cs1"' in body
        assert f"GET {WEB}/_api/a HTTP/1.1" in body
        assert f"POST {WEB}/_api/b HTTP/1.1" in body
        assert '{"x": 1}\n\n' in body
        assert body.endswith("--batch_B--\n")

    def test_method_override(self) -> None:
        body = build_batch_body(
            "B",
            [request("POST", "_api/e", headers={"X-HTTP-Method": "MERGE", "IF-Match": "*"})],
            WEB,
            guid_factory=changeset_ids(),
        )
        assert f"MERGE {WEB}/_api/e HTTP/1.1" in body
        assert "X-HTTP-Method" not in body
        assert "IF-Match: *" in body

    def test_method_override_any_casing(self) -> None:
        body = build_batch_body(
            "B",
            [request("POST", "_api/e", headers={"x-http-method": "DELETE"})],
            WEB,
            guid_factory=changeset_ids(),
        )
        assert f"DELETE {WEB}/_api/e HTTP/1.1" in body
        assert f"POST {WEB}/_api/e HTTP/1.1" not in body
        assert "x-http-method" not in body.lower()

    def test_part_headers(self) -> None:
        body = build_batch_body(
            "B",
            [
                request("GET", f"{WEB}/_api/a"),
                request("GET", "_api/b", headers={"Accept": "application/json;odata=verbose"}),
            ],
            WEB,
            global_headers={"Accept": "application/json;odata=nometadata", "X-Global": "1"},
        )
        first, second = body.split(f"--batch_B\n")[1:3]
        assert f"GET {WEB}/_api/a HTTP/1.1" in first
        assert "Accept: application/json;odata=nometadata" in first
        assert "X-Global: 1" in first
        assert "X-ClientService-ClientTag: " in first
        assert "Accept: application/json;odata=verbose" in second

    def test_get_only_has_no_changeset(self) -> None:
        body = build_batch_body("B", [request("GET", "_api/a")], WEB)
        assert "changeset" not in body

    def test_content_type(self) -> None:
        assert batch_content_type("B") == "multipart/mixed; boundary=batch_B"


class TestParseBatchResponse:
    def test_records_in_order(self) -> None:
        text = batch_response_text(
            ("HTTP/1.1 200 OK", '{"d":{"Title":"a"}}'),
            ("HTTP/1.1 201 Created", '{"d":{"Id":2}}'),
            ("HTTP/1.1 404 Not Found", '{"error":{"message":"gone"}}'),
        )
        records = parse_batch_response(text)
        assert [(r.status, r.status_text) for r in records] == [
            (200, "OK"),
            (201, "Created"),
            (404, "Not Found"),
        ]
        assert records[0].body_text == '{"d":{"Title":"a"}}'
        assert records[2].to_response().json() == {"error": {"message": "gone"}}

    def test_no_content(self) -> None:
        text = batch_response_text(
            ("HTTP/1.1 204 No Content", ""),
            ("HTTP/1.1 200 OK", '{"d":{}}'),
        )
        records = parse_batch_response(text)
        assert [r.status for r in records] == [204, 200]
        assert records[0].body_text == ""

    def test_no_content_followed_directly_by_boundary(self) -> None:
        text = "\n".join(
            [
                "--batchresponse_1",
                "Content-Type: application/http",
                "",
                "HTTP/1.1 204 No Content",
                "",
                "--batchresponse_1",
                "Content-Type: application/http",
                "",
                "HTTP/1.1 200 OK",
                "",
                '{"d":{}}',
                "--batchresponse_1--",
                "",
            ]
        )
        assert [r.status for r in parse_batch_response(text)] == [204, 200]

    def test_empty_response(self) -> None:
        with pytest.raises(BatchParseException):
            parse_batch_response("")

    def test_truncated(self) -> None:
        text = batch_response_text(("HTTP/1.1 200 OK", "{}"))
        truncated = text[: text.index("HTTP/1.1")]
        with pytest.raises(BatchParseException):
            parse_batch_response(truncated)

    def test_garbage_between_parts(self) -> None:
        with pytest.raises(BatchParseException):
            parse_batch_response("this is not a batch response\n")

    def test_broken_status_line(self) -> None:
        text = batch_response_text(("HTTP/1.1 OK", "{}"))
        with pytest.raises(BatchParseException):
            parse_batch_response(text)
