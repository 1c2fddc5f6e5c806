"""Tests for customer creation, lookup, update, and listing."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from wallet_identity.domain.contracts import CreateCustomerInput, CustomerFilter, UpdateCustomerInput
from wallet_identity.domain.customer import Role
from wallet_identity.domain.errors import DuplicateEmail, InvalidSecret, NotFound, ValidationError


def _create(service, email: str, **kwargs):
    kwargs.setdefault("password", "secret1")
    return service.create_customer(CreateCustomerInput(email=email, **kwargs))


def test_first_customers_receive_sequential_account_numbers(service):
    numbers = [_create(service, f"user{i}@example.com").account_number for i in range(3)]
    assert numbers == [1001, 1002, 1003]


def test_concurrent_creations_get_unique_numbers(service):
    with ThreadPoolExecutor(max_workers=8) as pool:
        customers = list(pool.map(lambda i: _create(service, f"c{i}@example.com"), range(3)))
    assert {c.account_number for c in customers} == {1001, 1002, 1003}


def test_create_hashes_password_and_normalises_fields(service, hasher):
    customer = _create(service, "  Mixed.Case@Example.COM ", name="  Ada  ")
    assert customer.email == "mixed.case@example.com"
    assert customer.name == "Ada"
    assert customer.role is Role.customer
    assert customer.balance == Decimal("0")
    assert customer.password_digest != "secret1"
    assert hasher.verify("secret1", customer.password_digest)


def test_password_of_five_characters_is_rejected(service, repository):
    with pytest.raises(ValidationError):
        _create(service, "short@example.com", password="12345")
    assert repository.insert_attempts == 0


def test_password_of_six_characters_is_accepted(service):
    assert _create(service, "six@example.com", password="123456").account_number == 1001


def test_invalid_secret_does_not_consume_account_number(service):
    with pytest.raises(InvalidSecret):
        _create(service, "bad@example.com", password="x" * 129)
    assert _create(service, "good@example.com").account_number == 1001


def test_unknown_role_is_rejected(service):
    with pytest.raises(ValidationError):
        _create(service, "root@example.com", role="superuser")


def test_name_longer_than_128_characters_is_rejected(service):
    with pytest.raises(ValidationError):
        _create(service, "long@example.com", name="n" * 129)


def test_blank_email_is_rejected(service):
    with pytest.raises(ValidationError):
        _create(service, "   ")


def test_duplicate_email_fails_case_insensitively(service):
    _create(service, "dup@example.com")
    with pytest.raises(DuplicateEmail):
        _create(service, "DUP@example.com ")


def test_concurrent_duplicate_email_has_exactly_one_winner(service):
    def attempt(_):
        try:
            return _create(service, "race@example.com")
        except DuplicateEmail as exc:
            return exc

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(8)))
    winners = [o for o in outcomes if not isinstance(o, DuplicateEmail)]
    assert len(winners) == 1
    assert sum(isinstance(o, DuplicateEmail) for o in outcomes) == 7


def test_lookups_return_customer_or_raise_not_found(service):
    customer = _create(service, "find@example.com")
    assert service.get_customer(customer.customer_id) == customer
    assert service.get_by_email("FIND@example.com") == customer
    assert service.get_by_account_number(customer.account_number) == customer

    with pytest.raises(NotFound):
        service.get_customer("missing")
    with pytest.raises(NotFound):
        service.get_by_email("nobody@example.com")
    with pytest.raises(NotFound):
        service.get_by_account_number(999)


def test_update_without_password_keeps_digest_byte_identical(service):
    customer = _create(service, "keep@example.com")
    updated = service.update_customer(
        customer.customer_id, UpdateCustomerInput(name="Renamed", balance=Decimal("12.50"))
    )
    assert updated.password_digest == customer.password_digest
    assert updated.name == "Renamed"
    assert updated.balance == Decimal("12.50")
    assert updated.account_number == customer.account_number


def test_update_with_password_rehashes(service, hasher):
    customer = _create(service, "rotate@example.com")
    updated = service.update_customer(customer.customer_id, UpdateCustomerInput(password="newsecret"))
    assert updated.password_digest != customer.password_digest
    assert hasher.verify("newsecret", updated.password_digest)
    assert not hasher.verify("secret1", updated.password_digest)


def test_update_rejects_negative_balance(service):
    customer = _create(service, "broke@example.com")
    with pytest.raises(ValidationError):
        service.update_customer(customer.customer_id, UpdateCustomerInput(balance=-1))
    assert service.get_customer(customer.customer_id).balance == Decimal("0")


def test_update_rejects_invalid_role(service):
    customer = _create(service, "role@example.com")
    with pytest.raises(ValidationError):
        service.update_customer(customer.customer_id, UpdateCustomerInput(role="owner"))


def test_update_missing_customer_raises_not_found(service):
    with pytest.raises(NotFound):
        service.update_customer("missing", UpdateCustomerInput(name="x"))


def test_list_filters_by_role(service):
    _create(service, "a@example.com")
    admin = _create(service, "admin@example.com", role="admin")
    _create(service, "b@example.com")

    result = service.list_customers(CustomerFilter(role="admin", page=1, per_page=30))
    assert [c.customer_id for c in result] == [admin.customer_id]


def test_list_without_filters_returns_everyone_ordered_by_account_number(service):
    for i in range(4):
        _create(service, f"user{i}@example.com", name="Same")
    result = service.list_customers(CustomerFilter())
    assert [c.account_number for c in result] == [1001, 1002, 1003, 1004]
    assert service.list_customers(CustomerFilter(name="Same")) == result


def test_list_paginates_with_one_indexed_pages(service):
    for i in range(5):
        _create(service, f"page{i}@example.com")
    first = service.list_customers(CustomerFilter(page=1, per_page=2))
    third = service.list_customers(CustomerFilter(page=3, per_page=2))
    assert [c.account_number for c in first] == [1001, 1002]
    assert [c.account_number for c in third] == [1005]


def test_list_filters_by_email(service):
    target = _create(service, "target@example.com")
    _create(service, "other@example.com")
    assert service.list_customers(CustomerFilter(email="Target@example.com")) == [target]


@pytest.mark.parametrize("page, per_page", [(0, 30), (1, 0), (1, 101)])
def test_list_rejects_bad_pagination(service, page, per_page):
    with pytest.raises(ValidationError):
        service.list_customers(CustomerFilter(page=page, per_page=per_page))


@pytest.mark.parametrize("email", ["ops@localhost", "user@wallet.local", "a@b", "@example.com"])
def test_emails_the_profile_view_would_reject_are_refused(service, repository, email):
    with pytest.raises(ValidationError):
        _create(service, email)
    assert repository.insert_attempts == 0
