"""Schema-constrained calls to the chat-completions endpoint."""

import json
import logging
from typing import Optional

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from .config import Settings
from .errors import DeadlineExceededError, MarshallingError, ProtocolError, TransportError
from .models import ModelRequest, ModelResponse

log = logging.getLogger(__name__)


class ModelGateway:
    """Sends one ModelRequest and returns the first choice's message content.

    The returned string is untrusted: the endpoint is asked to honour the
    output schema, but nothing here checks that it did.
    """

    # Jittered backoff between attempts; only deadline overruns are retried.
    retry_wait = wait_random_exponential(multiplier=0.5, max=4)

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def invoke(self, request: ModelRequest, timeout: Optional[float] = None) -> str:
        """Call the model and return its raw textual payload.

        Args:
            request: The constructed request.
            timeout: Deadline in seconds for one attempt. Defaults to the
                configured LLM_TIMEOUT_SECONDS.

        Raises:
            MarshallingError: the request cannot be serialized
            TransportError: network failure or non-2xx status
            DeadlineExceededError: the deadline passed on every attempt
            ProtocolError: the response envelope has no usable choice
        """
        body = self._marshal(request)
        deadline = timeout if timeout is not None else self.settings.llm_timeout_seconds

        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.settings.llm_max_attempts)),
            wait=self.retry_wait,
            retry=retry_if_exception_type(DeadlineExceededError),
            before_sleep=before_sleep_log(log, logging.WARNING),
            reraise=True,
        )
        response = retrying(self._send, body, deadline)
        log.debug("call_model_api :: model response: %s", response.raw_content)
        return response.raw_content

    def _marshal(self, request: ModelRequest) -> bytes:
        try:
            return json.dumps(request.to_payload(), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise MarshallingError(f"call_model_api :: error marshalling chat request: {e}") from e

    def _send(self, body: bytes, deadline: float) -> ModelResponse:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.groq_api_key}",
        }
        try:
            resp = self.session.post(
                self.settings.llm_api_url, data=body, headers=headers, timeout=deadline,
            )
        except requests.Timeout as e:
            raise DeadlineExceededError(
                f"call_model_api :: chat API timed out after {deadline}s: {e}"
            ) from e
        except requests.RequestException as e:
            raise TransportError(f"call_model_api :: error calling chat API: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"call_model_api :: chat API error [{resp.status_code}]: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        return ModelResponse(raw_content=_first_choice_content(resp))


def _first_choice_content(resp: requests.Response) -> str:
    try:
        envelope = resp.json()
    except ValueError as e:
        raise ProtocolError(f"call_model_api :: error decoding chat response: {e}") from e

    choices = envelope.get("choices") if isinstance(envelope, dict) else None
    if not isinstance(choices, list) or not choices:
        raise ProtocolError("call_model_api :: error no choices in chat response")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ProtocolError("call_model_api :: error no message content in first choice")
    return content
