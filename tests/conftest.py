import json

import pytest

from policy_match.config import Settings
from policy_match.database import Store
from policy_match.gateway import ModelGateway


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.encoding = "utf-8"

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def put(self, url, **kwargs):
        return self._next("PUT", url, kwargs)

    def sent_payload(self, index=0):
        return json.loads(self.calls[index]["data"])


def chat_response(content: str, status_code: int = 200) -> FakeResponse:
    return FakeResponse(status_code, {
        "choices": [{"message": {"role": "assistant", "content": content}}],
    })


@pytest.fixture
def settings(tmp_path):
    return Settings(
        groq_api_key="test-key",
        llm_model="test-model",
        tika_url="http://tika.test:9998",
        llm_api_url="http://llm.test/v1/chat/completions",
        db_path=tmp_path / "policy_match.db",
        llm_timeout_seconds=5.0,
    )


@pytest.fixture
def store(settings):
    return Store(settings.db_path)


@pytest.fixture
def make_gateway(settings):
    from tenacity import wait_none

    def _make(*outcomes, settings_override=None):
        session = FakeSession(*outcomes)
        gateway = ModelGateway(settings_override or settings, session=session)
        gateway.retry_wait = wait_none()
        return gateway, session

    return _make
