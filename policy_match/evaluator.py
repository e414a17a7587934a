"""Rules + candidate document -> ComplianceVerdict."""

import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from .config import Settings
from .errors import GatewayError, MarshallingError, ParseError
from .gateway import ModelGateway
from .models import ComplianceVerdict, Rule
from .normalizer import normalize_text
from .prompts import build_compliance_request
from .schema import VerdictPayload

log = logging.getLogger(__name__)


class ComplianceEvaluator:
    def __init__(self, gateway: ModelGateway, settings: Settings):
        self.gateway = gateway
        self.settings = settings

    def check_compliance(
        self,
        rules: Sequence[Rule],
        document_text: str,
        timeout: Optional[float] = None,
    ) -> ComplianceVerdict:
        """Judge document_text against rules.

        The verdict is the model's answer as given. Document text is only
        normalized when NORMALIZE_DOCUMENTS is set, and violations are only
        reconciled with is_compliant when RECONCILE_VERDICTS is set.
        The payload is never repaired.
        """
        if self.settings.normalize_documents:
            document_text = normalize_text(document_text)
        request = build_compliance_request(rules, document_text, self.settings)

        try:
            content = self.gateway.invoke(request, timeout=timeout)
        except (MarshallingError, GatewayError) as e:
            raise e.annotate("check_compliance")

        try:
            payload = VerdictPayload.model_validate_json(content)
        except ValidationError as e:
            raise ParseError(
                f"check_compliance :: error unmarshalling check compliance response: {e}"
            ) from e

        verdict = ComplianceVerdict(
            is_compliant=payload.is_compliant,
            compliance_percentage=payload.compliance_percentage,
            violations=list(payload.violations),
            is_human_review_required=payload.is_human_review_required,
        )
        if self.settings.reconcile_verdicts and verdict.violations and verdict.is_compliant:
            log.warning("check_compliance :: model reported %d violations but is_compliant=true; "
                        "marking non-compliant", len(verdict.violations))
            verdict.is_compliant = False

        log.info("check_compliance :: compliant=%s score=%d violations=%d review=%s",
                 verdict.is_compliant, verdict.compliance_percentage,
                 len(verdict.violations), verdict.is_human_review_required)
        return verdict
