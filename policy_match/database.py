"""SQLite persistence for policies, their rules, and checked documents."""

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Sequence

from .errors import NotFoundError
from .models import Document, Page, Policy, Rule, StoredRule

log = logging.getLogger(__name__)

_CREATE_SQL = """
CREATE TABLE IF NOT EXISTS policies (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    category TEXT NOT NULL,
    path TEXT NOT NULL,
    extension TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS rules (
    id TEXT PRIMARY KEY,
    policy_id TEXT NOT NULL,
    rule_id TEXT NOT NULL,
    rule_text TEXT NOT NULL,
    position INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (policy_id) REFERENCES policies(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    policy_id TEXT NOT NULL,
    title TEXT NOT NULL,
    path TEXT NOT NULL,
    extension TEXT NOT NULL,
    violations_json TEXT NOT NULL DEFAULT '[]',
    is_compliant INTEGER NOT NULL,
    is_human_review_required INTEGER NOT NULL,
    compliance_percentage INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (policy_id) REFERENCES policies(id) ON DELETE CASCADE
);
"""


class Store:
    """Each call opens and closes its own connection, so one Store can be
    shared between request threads."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def get_db(self) -> sqlite3.Connection:
        db = sqlite3.connect(str(self.db_path))
        db.row_factory = sqlite3.Row
        db.execute("PRAGMA journal_mode=WAL")
        db.execute("PRAGMA foreign_keys=ON")
        db.executescript(_CREATE_SQL)
        return db

    # -----------------------------------------------------------------------
    # Policies and rules
    # -----------------------------------------------------------------------

    def create_policy(self, title: str, category: str, path: str, extension: str,
                      rules: Sequence[Rule]) -> Policy:
        """Insert a policy and its rules in one transaction, keeping rule order."""
        now = datetime.now().isoformat()
        policy = Policy(
            id=str(uuid.uuid4()), title=title, category=category,
            path=path, extension=extension, created_at=now,
        )
        db = self.get_db()
        try:
            with db:
                db.execute(
                    "INSERT INTO policies (id, title, category, path, extension, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (policy.id, title, category, path, extension, now),
                )
                policy.rules = self._insert_rules(db, policy.id, rules, now)
        finally:
            db.close()
        log.info("create_policy :: stored policy %s with %d rules", policy.id, len(policy.rules))
        return policy

    def create_rules(self, policy_id: str, rules: Sequence[Rule]) -> list[StoredRule]:
        """Append rules to an existing policy, after the ones it already has."""
        db = self.get_db()
        try:
            with db:
                if db.execute("SELECT 1 FROM policies WHERE id = ?", (policy_id,)).fetchone() is None:
                    raise NotFoundError(f"create_rules :: policy {policy_id} not found")
                stored = self._insert_rules(db, policy_id, rules, datetime.now().isoformat())
        finally:
            db.close()
        log.info("create_rules :: stored %d rules for policy %s", len(stored), policy_id)
        return stored

    def get_policy(self, policy_id: str) -> Policy:
        db = self.get_db()
        try:
            row = db.execute("SELECT * FROM policies WHERE id = ?", (policy_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"get_policy :: policy {policy_id} not found")
            policy = _policy_from_row(row)
            policy.rules = self._rules_for(db, policy_id)
        finally:
            db.close()
        return policy

    def list_policies(self, page: int = 1, page_size: int = 10) -> Page:
        offset = (page - 1) * page_size
        db = self.get_db()
        try:
            rows = db.execute(
                "SELECT * FROM policies ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (page_size, offset),
            ).fetchall()
            policies = [_policy_from_row(row) for row in rows]
            rules = self._rules_for_many(db, [p.id for p in policies])
            for policy in policies:
                policy.rules = rules.get(policy.id, [])
            total = db.execute("SELECT COUNT(*) FROM policies").fetchone()[0]
        finally:
            db.close()
        return Page(items=policies, page=page, page_size=page_size, total=total)

    def delete_policy(self, policy_id: str) -> None:
        self._delete("DELETE FROM policies WHERE id = ?", (policy_id,),
                     f"delete_policy :: policy {policy_id} not found")

    def delete_rule(self, policy_id: str, rule_id: str) -> None:
        self._delete("DELETE FROM rules WHERE policy_id = ? AND rule_id = ?",
                     (policy_id, rule_id),
                     f"delete_rule :: rule {rule_id} of policy {policy_id} not found")

    @staticmethod
    def _rules_for(db: sqlite3.Connection, policy_id: str) -> list[StoredRule]:
        rows = db.execute(
            "SELECT id, policy_id, rule_id, rule_text, position FROM rules "
            "WHERE policy_id = ? ORDER BY position",
            (policy_id,),
        ).fetchall()
        return [StoredRule(**dict(r)) for r in rows]

    @staticmethod
    def _rules_for_many(db: sqlite3.Connection,
                        policy_ids: list[str]) -> dict[str, list[StoredRule]]:
        if not policy_ids:
            return {}
        marks = ", ".join("?" * len(policy_ids))
        rows = db.execute(
            "SELECT id, policy_id, rule_id, rule_text, position FROM rules "
            f"WHERE policy_id IN ({marks}) ORDER BY policy_id, position",
            policy_ids,
        ).fetchall()
        grouped: dict[str, list[StoredRule]] = {}
        for r in rows:
            grouped.setdefault(r["policy_id"], []).append(StoredRule(**dict(r)))
        return grouped

    @staticmethod
    def _insert_rules(db: sqlite3.Connection, policy_id: str, rules: Sequence[Rule],
                      now: str) -> list[StoredRule]:
        # Positions continue from the policy's last rule.
        start = db.execute(
            "SELECT COALESCE(MAX(position) + 1, 0) FROM rules WHERE policy_id = ?",
            (policy_id,),
        ).fetchone()[0]
        stored = [
            StoredRule(id=str(uuid.uuid4()), policy_id=policy_id,
                       rule_id=r.rule_id, rule_text=r.rule_text, position=start + i)
            for i, r in enumerate(rules)
        ]
        db.executemany(
            "INSERT INTO rules (id, policy_id, rule_id, rule_text, position, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [(r.id, r.policy_id, r.rule_id, r.rule_text, r.position, now) for r in stored],
        )
        return stored

    # -----------------------------------------------------------------------
    # Documents
    # -----------------------------------------------------------------------

    def create_document(self, document: Document) -> Document:
        document.created_at = document.created_at or datetime.now().isoformat()
        db = self.get_db()
        try:
            with db:
                db.execute(
                    """INSERT INTO documents (id, policy_id, title, path, extension,
                       violations_json, is_compliant, is_human_review_required,
                       compliance_percentage, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (document.id, document.policy_id, document.title, document.path,
                     document.extension, json.dumps(document.violations),
                     int(document.is_compliant), int(document.is_human_review_required),
                     document.compliance_percentage, document.created_at),
                )
        finally:
            db.close()
        return document

    def list_documents(self, page: int = 1, page_size: int = 10) -> Page:
        offset = (page - 1) * page_size
        db = self.get_db()
        try:
            rows = db.execute(
                """SELECT d.*, p.title AS policy_title FROM documents d
                   JOIN policies p ON p.id = d.policy_id
                   ORDER BY d.created_at DESC LIMIT ? OFFSET ?""",
                (page_size, offset),
            ).fetchall()
            total = db.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        finally:
            db.close()
        return Page(items=[_document_from_row(r) for r in rows],
                    page=page, page_size=page_size, total=total)

    def delete_document(self, document_id: str) -> None:
        self._delete("DELETE FROM documents WHERE id = ?", (document_id,),
                     f"delete_document :: document {document_id} not found")

    def _delete(self, sql: str, params: tuple, missing: str) -> None:
        db = self.get_db()
        try:
            with db:
                deleted = db.execute(sql, params).rowcount
        finally:
            db.close()
        if deleted == 0:
            raise NotFoundError(missing)


def _policy_from_row(row: sqlite3.Row) -> Policy:
    return Policy(
        id=row["id"], title=row["title"], category=row["category"],
        path=row["path"], extension=row["extension"], created_at=row["created_at"],
    )


def _document_from_row(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        policy_id=row["policy_id"],
        title=row["title"],
        path=row["path"],
        extension=row["extension"],
        violations=json.loads(row["violations_json"]) if row["violations_json"] else [],
        is_compliant=bool(row["is_compliant"]),
        is_human_review_required=bool(row["is_human_review_required"]),
        compliance_percentage=row["compliance_percentage"],
        created_at=row["created_at"],
        policy_title=row["policy_title"],
    )
