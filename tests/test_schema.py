from __future__ import annotations

from datetime import datetime, timezone

import pytest

from learning.schema import (
    Account,
    Invoice,
    Product,
    SchemaError,
    UniqueValue,
    User,
    new_id,
    render_template,
    unique_key,
)


def test_new_id_is_time_sortable_ulid() -> None:
    first = new_id()
    second = new_id()

    assert len(first) == 26
    assert first[:10] <= second[:10]


def test_account_keys() -> None:
    account = Account.prepare(name="Acme Rockets")

    assert len(account.id) == 26
    assert account.pk == f"account#{account.id}"
    assert account.sk == "account#"
    assert account.gs1pk == "account#"
    assert account.gs1sk == f"account#Acme Rockets#{account.id}"
    assert account.balance == 0
    assert account.created == account.updated


def test_user_keys_and_defaults() -> None:
    user = User.prepare(account_id="01ACCOUNT", name="Road Runner", email="roadrunner@acme.com")

    assert user.pk == "account#01ACCOUNT"
    assert user.sk == "user#roadrunner@acme.com"
    assert user.gs1pk == "user#"
    assert user.gs1sk == f"user#Road Runner#{user.id}"
    assert user.role == "user"
    assert user.status == "active"
    assert user.balance == 0
    assert user.address is not None


def test_prepare_keeps_supplied_id() -> None:
    product = Product.prepare(id="fixed", name="rocket", price=10.99)

    assert product.pk == "product#fixed"
    assert product.gs1sk == "product#rocket#fixed"


def test_invoice_date_sorts_in_index_key() -> None:
    date = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    invoice = Invoice.prepare(account_id="A1", date=date, product="rocket", quantity=1, total=10.99)

    assert invoice.pk == "account#A1"
    assert invoice.sk == f"invoice#{invoice.id}"
    assert invoice.gs1sk == f"invoice#2024-01-02T03:04:05.000000+00:00#{invoice.id}"


def test_invoice_date_defaults_to_now() -> None:
    before = datetime.now(timezone.utc)
    invoice = Invoice.prepare(account_id="A1")

    assert invoice.date >= before


def test_key_for_composes_primary_key() -> None:
    assert User.key_for(account_id="A1", email="e@x.io") == ("account#A1", "user#e@x.io")
    assert Account.key_for(id="A1") == ("account#A1", "account#")


def test_missing_template_value_raises() -> None:
    with pytest.raises(SchemaError, match="account_id"):
        User.prepare(name="Road Runner", email="roadrunner@acme.com")

    with pytest.raises(SchemaError, match="email"):
        User.key_for(account_id="A1")


@pytest.mark.parametrize("field, value", [("role", "owner"), ("status", "deleted")])
def test_enum_fields_are_validated(field: str, value: str) -> None:
    with pytest.raises(SchemaError, match=field):
        User.prepare(account_id="A1", name="n", email="n@acme.com", **{field: value})


def test_unknown_attribute_is_rejected() -> None:
    with pytest.raises(SchemaError, match="nickname"):
        Account.prepare(name="Acme", nickname="acme")


def test_unique_marker_keys() -> None:
    marker = UniqueValue.for_value("Account", "name", "Acme Rockets")

    assert marker.pk == unique_key("Account", "name", "Acme Rockets")
    assert marker.pk == "_unique#Account#name#Acme Rockets"
    assert marker.sk == "_unique#"
    assert marker.gs1pk is None


def test_render_template_ignores_none_values() -> None:
    with pytest.raises(SchemaError):
        render_template("Invoice", "gs1sk", "invoice#{date}#{id}", {"date": None, "id": "X"})


def test_index_dates_keep_fixed_width_fraction() -> None:
    whole = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    later = whole.replace(microsecond=123456)

    first = render_template("Invoice", "gs1sk", "invoice#{date}", {"date": whole})
    second = render_template("Invoice", "gs1sk", "invoice#{date}", {"date": later})

    assert first == "invoice#2024-01-02T03:04:05.000000+00:00"
    assert first < second
