import io

import pytest
import requests

from conftest import FakeResponse, FakeSession
from policy_match.errors import TextExtractionError
from policy_match.extractors import TikaClient, sanitize_filename


def test_extract_text_puts_file_to_tika(settings):
    session = FakeSession(FakeResponse(200, text="1. No smoking."))
    f = io.BytesIO(b"%PDF-1.4")

    text = TikaClient(settings, session=session).extract_text(f)

    assert text == "1. No smoking."
    call = session.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "http://tika.test:9998/tika"
    assert call["headers"] == {"Accept": "text/plain"}
    assert call["data"] is f


def test_tika_error_status(settings):
    session = FakeSession(FakeResponse(422, text="Unprocessable"))

    with pytest.raises(TextExtractionError, match="422"):
        TikaClient(settings, session=session).extract_text(io.BytesIO(b""))


def test_tika_unreachable(settings):
    session = FakeSession(requests.ConnectionError("refused"))

    with pytest.raises(TextExtractionError):
        TikaClient(settings, session=session).extract_text(io.BytesIO(b""))


@pytest.mark.parametrize("filename, expected", [
    ("Employee Handbook.PDF", ("employee_handbook", ".PDF")),
    ("  Code of Conduct .docx", ("code_of_conduct", ".docx")),
    ("notes", ("notes", "")),
    ("dir/sub/Policy v2.txt", ("policy_v2", ".txt")),
])
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected
