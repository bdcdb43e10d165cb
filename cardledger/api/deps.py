# cardledger/api/deps.py
"""
Request-scoped collaborators. Routes take these through Depends() so tests
(or another deployment) can swap the store, file store or mailer with
app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, Header

from cardledger.clients.email import EmailClient
from cardledger.clients.files import LocalFileStore
from cardledger.config import config
from cardledger.db.engine import get_engine
from cardledger.db.store import LedgerStore
from cardledger.errors import PermissionDeniedError
from cardledger.services.status import OrderStatusMachine


def get_store() -> LedgerStore:
    return LedgerStore(get_engine())


def get_file_store() -> LocalFileStore:
    return LocalFileStore(config.STORAGE_DIR, config.SIGNING_SECRET, config.PUBLIC_BASE_URL)


def get_mailer() -> EmailClient:
    return EmailClient(
        api_key=config.RESEND_API_KEY,
        sender=config.EMAIL_FROM,
        url=config.RESEND_API_URL,
        timeout=config.EMAIL_TIMEOUT,
    )


def get_status_machine(
    store: LedgerStore = Depends(get_store),
    files: LocalFileStore = Depends(get_file_store),
    mailer: EmailClient = Depends(get_mailer),
) -> OrderStatusMachine:
    return OrderStatusMachine(store, files, mailer)


# The auth provider in front of the service forwards who is calling.
def get_user_email(x_user_email: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_email


def require_admin(x_user_role: Optional[str] = Header(default=None)) -> None:
    if (x_user_role or "").lower() != "admin":
        raise PermissionDeniedError("Only admins can change system settings")
