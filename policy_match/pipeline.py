"""Main orchestration: upload a policy into rules, check a document against them."""

import logging
import time
import uuid
from typing import BinaryIO, Optional

from .config import Settings
from .database import Store
from .errors import PolicyMatchError
from .evaluator import ComplianceEvaluator
from .extractor import RuleExtractor
from .extractors import TikaClient, sanitize_filename
from .gateway import ModelGateway
from .models import ComplianceVerdict, Document, Page, Policy

log = logging.getLogger(__name__)


class PolicyService:
    """End-to-end use cases; every step runs in order on the calling thread."""

    def __init__(
        self,
        settings: Settings,
        store: Store,
        tika: TikaClient,
        extractor: RuleExtractor,
        evaluator: ComplianceEvaluator,
    ):
        self.settings = settings
        self.store = store
        self.tika = tika
        self.extractor = extractor
        self.evaluator = evaluator

    @classmethod
    def from_settings(cls, settings: Settings) -> "PolicyService":
        gateway = ModelGateway(settings)
        return cls(
            settings=settings,
            store=Store(settings.db_path),
            tika=TikaClient(settings),
            extractor=RuleExtractor(gateway, settings),
            evaluator=ComplianceEvaluator(gateway, settings),
        )

    def upload_policy(
        self,
        f: BinaryIO,
        filename: str,
        title: str,
        category: str,
        timeout: Optional[float] = None,
    ) -> Policy:
        """Extract text, turn it into rules, and persist the policy with them.

        Nothing is stored if any step fails.
        """
        t0 = time.time()

        log.info("[Step 1/3] Extracting text from %s", filename)
        try:
            text = self.tika.extract_text(f)
        except PolicyMatchError as e:
            raise e.annotate("upload_policy")

        log.info("[Step 2/3] Extracting rules")
        try:
            rules = self.extractor.extract_rules(text, timeout=timeout)
        except PolicyMatchError as e:
            raise e.annotate("upload_policy")

        log.info("[Step 3/3] Saving policy")
        path, ext = sanitize_filename(filename)
        policy = self.store.create_policy(
            title=title, category=category, path=path, extension=ext, rules=rules,
        )

        log.info("upload_policy :: %s done in %.1fs (%d rules)",
                 policy.id, time.time() - t0, len(rules))
        return policy

    def check_document_compliance(
        self,
        f: BinaryIO,
        filename: str,
        policy_id: str,
        timeout: Optional[float] = None,
    ) -> ComplianceVerdict:
        """Check a document against a stored policy and record the verdict.

        The document is only stored once a verdict has been produced.
        """
        t0 = time.time()

        log.info("[Step 1/4] Extracting text from %s", filename)
        try:
            text = self.tika.extract_text(f)
        except PolicyMatchError as e:
            raise e.annotate("check_document_compliance")

        log.info("[Step 2/4] Loading policy %s", policy_id)
        try:
            policy = self.store.get_policy(policy_id)
        except PolicyMatchError as e:
            raise e.annotate("check_document_compliance")

        log.info("[Step 3/4] Checking against %d rules", len(policy.rules))
        try:
            verdict = self.evaluator.check_compliance(
                [r.to_rule() for r in policy.rules], text, timeout=timeout,
            )
        except PolicyMatchError as e:
            raise e.annotate("check_document_compliance")

        log.info("[Step 4/4] Saving document")
        path, ext = sanitize_filename(filename)
        self.store.create_document(Document(
            id=str(uuid.uuid4()),
            policy_id=policy.id,
            title=path,
            path=path,
            extension=ext,
            violations=list(verdict.violations),
            is_compliant=verdict.is_compliant,
            is_human_review_required=verdict.is_human_review_required,
            compliance_percentage=verdict.compliance_percentage,
        ))

        log.info("check_document_compliance :: done in %.1fs", time.time() - t0)
        return verdict

    # -----------------------------------------------------------------------
    # Pass-throughs
    # -----------------------------------------------------------------------

    def get_policies(self, page: int, page_size: int) -> Page:
        return self.store.list_policies(page, page_size)

    def get_documents(self, page: int, page_size: int) -> Page:
        return self.store.list_documents(page, page_size)

    def delete_policy(self, policy_id: str) -> None:
        self.store.delete_policy(policy_id)

    def delete_document(self, document_id: str) -> None:
        self.store.delete_document(document_id)

    def delete_rule(self, policy_id: str, rule_id: str) -> None:
        self.store.delete_rule(policy_id, rule_id)

