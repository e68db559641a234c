"""Single-table schema for the overview tutorial.

Every record type lives in one table. The primary index is ``pk``/``sk`` and
the ``gs1`` index is ``gs1pk``/``gs1sk``; the values of all four keys are
composed from ``KEY_TEMPLATES`` so that related records share a partition:

=========  ======================  ===============  ==========  ========================
Model      pk                      sk               gs1pk       gs1sk
=========  ======================  ===============  ==========  ========================
Account    account#{id}            account#         account#    account#{name}#{id}
User       account#{account_id}    user#{email}     user#       user#{name}#{id}
Product    product#{id}            product#         product#    product#{name}#{id}
Invoice    account#{account_id}    invoice#{id}     invoice#    invoice#{date}#{id}
=========  ======================  ===============  ==========  ========================

The ``_type`` attribute records which model an item belongs to.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Tuple, Type

from pynamodb.attributes import (
    DiscriminatorAttribute,
    MapAttribute,
    NumberAttribute,
    UnicodeAttribute,
    UTCDateTimeAttribute,
)
from pynamodb.constants import PAY_PER_REQUEST_BILLING_MODE
from pynamodb.indexes import GlobalSecondaryIndex, IncludeProjection
from pynamodb.models import Model
from ulid import ULID

from .config import OverviewSettings
from .crypto import FIELD_CIPHER, EncryptedUnicodeAttribute

UNIQUE_SORT_KEY = "_unique#"


class SchemaError(ValueError):
    """Raised when a record does not satisfy the schema."""


class UniqueValueError(SchemaError):
    """Raised when a unique field value is already taken."""

    def __init__(self, model: str, field: str, value: object) -> None:
        super().__init__(f"{model}.{field} value {value!r} is already in use")
        self.model = model
        self.field = field
        self.value = value


def new_id() -> str:
    """Return a new time-sortable identifier."""

    return str(ULID())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _template_value(value: Any) -> str:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    return str(value)


def render_template(model: str, key: str, template: str, values: Dict[str, Any]) -> str:
    present = {name: _template_value(value) for name, value in values.items() if value is not None}
    try:
        return template.format_map(present)
    except KeyError as exc:
        raise SchemaError(
            f"{model}.{key} needs a value for '{exc.args[0]}' (template {template!r})"
        ) from None


def unique_key(model: str, field: str, value: object) -> str:
    return f"_unique#{model}#{field}#{value}"


class Gs1Index(GlobalSecondaryIndex):
    """Secondary index for lookups by name, date or record type."""

    class Meta:
        index_name = "gs1"
        projection = IncludeProjection(["_type"])
        read_capacity_units = 1
        write_capacity_units = 1

    gs1pk = UnicodeAttribute(hash_key=True)
    gs1sk = UnicodeAttribute(range_key=True)


class OverviewItem(Model):
    """Base for every record stored in the overview table."""

    class Meta:
        table_name = "TestOverview"
        region = "us-east-1"
        host = None
        billing_mode = PAY_PER_REQUEST_BILLING_MODE

    KEY_TEMPLATES: ClassVar[Dict[str, str]] = {}
    ENUMS: ClassVar[Dict[str, Tuple[str, ...]]] = {}
    UNIQUE: ClassVar[Tuple[str, ...]] = ()

    pk = UnicodeAttribute(hash_key=True)
    sk = UnicodeAttribute(range_key=True)
    gs1pk = UnicodeAttribute(null=True)
    gs1sk = UnicodeAttribute(null=True)
    item_type = DiscriminatorAttribute(attr_name="_type")
    created = UTCDateTimeAttribute(null=True)
    updated = UTCDateTimeAttribute(null=True)

    gs1 = Gs1Index()

    @classmethod
    def type_name(cls) -> str:
        return cls.__name__

    @classmethod
    def key_for(cls, **values: Any) -> Tuple[str, str]:
        """Compose the primary key of the record described by ``values``."""

        return (
            render_template(cls.type_name(), "pk", cls.KEY_TEMPLATES["pk"], values),
            render_template(cls.type_name(), "sk", cls.KEY_TEMPLATES["sk"], values),
        )

    @classmethod
    def prepare(cls, **values: Any) -> "OverviewItem":
        """Build a new record with generated id, defaults, timestamps and keys."""

        attributes = cls.get_attributes()
        unknown = sorted(set(values) - set(attributes))
        if unknown:
            raise SchemaError(f"{cls.type_name()} has no attribute(s): {', '.join(unknown)}")
        if "id" in attributes and not values.get("id"):
            values["id"] = new_id()

        now = utcnow()
        values.setdefault("created", now)
        values.setdefault("updated", now)

        item = cls(**values)
        item.validate()
        item.compose_keys()
        return item

    def validate(self) -> None:
        for name, allowed in self.ENUMS.items():
            value = getattr(self, name)
            if value is not None and value not in allowed:
                raise SchemaError(
                    f"{self.type_name()}.{name} must be one of {', '.join(allowed)}; got {value!r}"
                )

    def compose_keys(self) -> None:
        values = {name: getattr(self, name) for name in self.get_attributes()}
        for key, template in self.KEY_TEMPLATES.items():
            setattr(self, key, render_template(self.type_name(), key, template, values))


class Address(MapAttribute):
    street = UnicodeAttribute(null=True)
    city = UnicodeAttribute(null=True)
    zip = UnicodeAttribute(null=True)


class Account(OverviewItem, discriminator="Account"):
    KEY_TEMPLATES = {
        "pk": "account#{id}",
        "sk": "account#",
        "gs1pk": "account#",
        "gs1sk": "account#{name}#{id}",
    }
    UNIQUE = ("name",)

    id = UnicodeAttribute()
    name = UnicodeAttribute()
    balance = NumberAttribute(default=0)


class User(OverviewItem, discriminator="User"):
    KEY_TEMPLATES = {
        "pk": "account#{account_id}",
        "sk": "user#{email}",
        "gs1pk": "user#",
        "gs1sk": "user#{name}#{id}",
    }
    ENUMS = {
        "role": ("admin", "user"),
        "status": ("active", "inactive"),
    }

    account_id = UnicodeAttribute(attr_name="accountId")
    id = UnicodeAttribute()
    name = UnicodeAttribute()
    email = EncryptedUnicodeAttribute()
    role = UnicodeAttribute(default="user")
    address = Address(default=Address)
    status = UnicodeAttribute(default="active")
    balance = NumberAttribute(default=0)


class Product(OverviewItem, discriminator="Product"):
    KEY_TEMPLATES = {
        "pk": "product#{id}",
        "sk": "product#",
        "gs1pk": "product#",
        "gs1sk": "product#{name}#{id}",
    }

    id = UnicodeAttribute()
    name = UnicodeAttribute()
    price = NumberAttribute()


class Invoice(OverviewItem, discriminator="Invoice"):
    KEY_TEMPLATES = {
        "pk": "account#{account_id}",
        "sk": "invoice#{id}",
        "gs1pk": "invoice#",
        "gs1sk": "invoice#{date}#{id}",
    }

    account_id = UnicodeAttribute(attr_name="accountId")
    date = UTCDateTimeAttribute(default=utcnow)
    id = UnicodeAttribute()
    product = UnicodeAttribute(null=True)
    # "count" would shadow Model.count()
    quantity = NumberAttribute(attr_name="count", null=True)
    total = NumberAttribute(null=True)


class UniqueValue(OverviewItem, discriminator="_unique"):
    """Marker item that reserves a unique field value."""

    @classmethod
    def for_value(cls, model: str, field: str, value: object) -> "UniqueValue":
        now = utcnow()
        return cls(unique_key(model, field, value), UNIQUE_SORT_KEY, created=now, updated=now)


MODELS: Tuple[Type[OverviewItem], ...] = (OverviewItem, Account, User, Product, Invoice, UniqueValue)

# Emulators accept any credentials but botocore still signs requests.
EMULATOR_CREDENTIALS: Tuple[str, str] = ("local", "local")


def bind_models(settings: OverviewSettings, *, endpoint_url: Optional[str]) -> None:
    """Point every model at the configured table and endpoint.

    ``endpoint_url`` of ``None`` uses the default service endpoint and credential
    chain for the region; any other endpoint is signed with :data:`EMULATOR_CREDENTIALS`.
    """

    meta = OverviewItem.Meta
    meta.table_name = settings.table_name
    meta.region = settings.region
    meta.host = endpoint_url
    if endpoint_url is None:
        meta.aws_access_key_id, meta.aws_secret_access_key = None, None
    else:
        meta.aws_access_key_id, meta.aws_secret_access_key = EMULATOR_CREDENTIALS
    for model in MODELS:
        model._connection = None
    FIELD_CIPHER.configure(settings.cipher_name, settings.crypto_password)


__all__ = [
    "Account",
    "Address",
    "EMULATOR_CREDENTIALS",
    "Invoice",
    "MODELS",
    "OverviewItem",
    "Product",
    "SchemaError",
    "UNIQUE_SORT_KEY",
    "UniqueValue",
    "UniqueValueError",
    "User",
    "bind_models",
    "new_id",
    "render_template",
    "utcnow",
    "unique_key",
]
