"""Idempotent creation of the privileged master account."""

from __future__ import annotations

import logging

from .contracts import CreateCustomerInput
from .customer import Customer, Role
from .errors import DuplicateAccountNumber, DuplicateEmail, NotFound
from .service import CustomerService

logger = logging.getLogger(__name__)

MASTER_ACCOUNT_NAME = "Master Account"


class MasterAccountBootstrapper:
    """Ensures exactly one admin identity exists under the configured master account number."""

    def __init__(
        self,
        service: CustomerService,
        *,
        account_number: int,
        email: str,
        password: str,
        name: str = MASTER_ACCOUNT_NAME,
    ) -> None:
        self._service = service
        self._account_number = account_number
        self._email = email
        self._password = password
        self._name = name

    def ensure_master_account(self) -> Customer:
        """Return the master account, creating it on first call.

        An existing record is returned untouched. When concurrent callers
        race, the loser's insert hits a unique constraint and it re-reads the
        winner's record instead.
        """
        try:
            return self._service.get_by_account_number(self._account_number)
        except NotFound:
            pass

        try:
            customer = self._service.create_customer(
                CreateCustomerInput(
                    email=self._email,
                    password=self._password,
                    name=self._name,
                    role=Role.admin,
                    account_number=self._account_number,
                )
            )
        except (DuplicateAccountNumber, DuplicateEmail) as exc:
            try:
                return self._service.get_by_account_number(self._account_number)
            except NotFound:
                # The master email belongs to some other account number.
                raise exc from None

        logger.info("master account created account_number=%s", customer.account_number)
        return customer
