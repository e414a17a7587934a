"""Policy text -> ordered list of Rule records."""

import logging
from typing import Optional

from pydantic import ValidationError

from .config import Settings
from .errors import GatewayError, MarshallingError, ParseError
from .gateway import ModelGateway
from .models import Rule
from .normalizer import normalize_text
from .prompts import build_rule_extraction_request
from .repair import repair
from .schema import ExtractRulesPayload

log = logging.getLogger(__name__)


class RuleExtractor:
    def __init__(self, gateway: ModelGateway, settings: Settings):
        self.gateway = gateway
        self.settings = settings

    def extract_rules(self, policy_text: str, timeout: Optional[float] = None) -> list[Rule]:
        """Extract the numbered rules of a policy, in document order.

        An empty list is a valid result. Raises MarshallingError, a
        GatewayError subtype, or ParseError, each prefixed with the
        operation name.
        """
        cleaned = normalize_text(policy_text)
        request = build_rule_extraction_request(cleaned, self.settings)

        try:
            content = self.gateway.invoke(request, timeout=timeout)
        except (MarshallingError, GatewayError) as e:
            raise e.annotate("extract_rules")

        original = content.encode("utf-8")
        raw = repair(original)
        if raw != original:
            log.warning("extract_rules :: payload looked truncated, appended %r",
                        raw[len(original.rstrip()):].decode("utf-8"))

        try:
            payload = ExtractRulesPayload.model_validate_json(raw)
        except ValidationError as e:
            raise ParseError(
                f"extract_rules :: error unmarshalling extract rules response: {e}"
            ) from e

        rules = [Rule(rule_id=r.rule_id, rule_text=r.rule_text) for r in payload.rules]
        log.info("extract_rules :: extracted %d rules", len(rules))
        return rules
