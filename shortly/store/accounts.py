"""
Accounts and the current session.

Sign-in is passwordless: an email either finds its account or creates one,
and the session pointer is persisted under its own key.
"""

import re

from shortly.core.errors import InvalidEmail
from shortly.models.database import BlobStore
from shortly.models.records import Account, AccountSnapshot, Session, SessionSnapshot
from shortly.store.snapshots import read_snapshot, write_snapshot

import structlog

logger = structlog.get_logger()

ACCOUNTS_KEY = "shortly_users_v1"
SESSION_KEY = "shortly_session_v1"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw: str | None) -> str:
    email = str(raw or "").strip().lower()
    if not email or not _EMAIL_RE.match(email):
        raise InvalidEmail(field="email")
    return email


class AccountStore:
    def __init__(self, blobs: BlobStore):
        self._blobs = blobs
        self._accounts: list[Account] = []
        self._session: Session | None = None

    def load(self) -> None:
        self._accounts = list(read_snapshot(self._blobs, ACCOUNTS_KEY, AccountSnapshot).accounts)
        self._session = read_snapshot(self._blobs, SESSION_KEY, SessionSnapshot).session

    def flush(self) -> None:
        write_snapshot(self._blobs, ACCOUNTS_KEY, AccountSnapshot(accounts=self._accounts))
        write_snapshot(self._blobs, SESSION_KEY, SessionSnapshot(session=self._session))

    def sign_in(self, email: str, name: str | None = None) -> Account:
        normalized = normalize_email(email)

        account = self.find_by_email(normalized)
        if account is None:
            account = Account(email=normalized, name=(name or "").strip())
            accounts = [*self._accounts, account]
            write_snapshot(self._blobs, ACCOUNTS_KEY, AccountSnapshot(accounts=accounts))
            self._accounts = accounts
            logger.info("account_created", account_id=account.id)

        session = Session(user_id=account.id, email=account.email)
        write_snapshot(self._blobs, SESSION_KEY, SessionSnapshot(session=session))
        self._session = session
        logger.info("signed_in", account_id=account.id)
        return account.model_copy()

    def sign_out(self) -> None:
        write_snapshot(self._blobs, SESSION_KEY, SessionSnapshot(session=None))
        self._session = None
        logger.info("signed_out")

    def current_session(self) -> Session | None:
        return self._session.model_copy() if self._session else None

    def find_by_id(self, account_id: str) -> Account | None:
        for account in self._accounts:
            if account.id == account_id:
                return account.model_copy()
        return None

    def find_by_email(self, email: str) -> Account | None:
        wanted = (email or "").strip().lower()
        for account in self._accounts:
            if account.email == wanted:
                return account.model_copy()
        return None
