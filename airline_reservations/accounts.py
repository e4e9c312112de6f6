from __future__ import annotations

from typing import Optional, Union

import bcrypt
from loguru import logger

from .config import DEFAULT_BCRYPT_ROUNDS
from .errors import AuthenticationError, NotFoundError, ValidationError
from .models import Account, Role, dump_rows, load_rows
from .storage import Storage, load_text, save_text


USERS_KEY = "users.txt"
# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


class AccountStore:
    def __init__(self, storage: Storage, *, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.storage = storage
        self.bcrypt_rounds = bcrypt_rounds
        self.accounts: dict[str, Account] = {}

    def load(self) -> None:
        self.accounts.clear()
        for account in load_rows(Account, load_text(self.storage, USERS_KEY), source=USERS_KEY):
            if account.username in self.accounts:
                logger.warning("Skipping duplicate account {}", account.username)
                continue
            self.accounts[account.username] = account

    def save(self) -> None:
        save_text(self.storage, USERS_KEY, dump_rows(self.accounts.values()))

    def exists(self, username: str) -> bool:
        return (username or "").strip() in self.accounts

    def get(self, username: str) -> Account:
        account = self.accounts.get((username or "").strip())
        if account is None:
            raise NotFoundError(f"account not found: {username}")
        return account

    def sign_up(self, username: str, password: str, name: str, role: Union[Role, str] = Role.customer) -> Account:
        username = (username or "").strip()
        if not username:
            raise ValidationError("username cannot be empty")
        if username in self.accounts:
            raise ValidationError("username already exists; please choose another one")
        if not password:
            raise ValidationError("password cannot be empty")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        if not (name or "").strip():
            raise ValidationError("name cannot be empty")

        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds))
        account = Account.parse(username=username, password_hash=hashed.decode("utf-8"), name=name, role=role)
        self.accounts[account.username] = account
        logger.info("Signed up {} account {}", account.role.value, account.username)
        return account

    def login(self, username: str, password: str, role: Optional[Union[Role, str]] = None) -> Account:
        account = self.accounts.get((username or "").strip())
        if account is None or not _verify(password or "", account.password_hash):
            raise AuthenticationError("invalid username or password")
        if role is not None and account.role != Role(role):
            raise AuthenticationError("invalid user type for this account")
        return account

    def customers(self) -> list[Account]:
        return [a for a in self.accounts.values() if a.role == Role.customer]

    def delete_customer(self, username: str) -> Account:
        account = self.accounts.get((username or "").strip())
        if account is None or account.is_admin:
            raise NotFoundError(f"customer account not found: {username}")
        del self.accounts[account.username]
        logger.info("Deleted customer account {}", account.username)
        return account


def _verify(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash, or a password bcrypt refuses outright.
        return False
