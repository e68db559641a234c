"""Schema-bound handle on the single overview table."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Type

from pynamodb.connection import Connection
from pynamodb.exceptions import TransactWriteError
from pynamodb.pagination import ResultIterator
from pynamodb.transactions import TransactWrite

from .config import OverviewSettings
from .schema import (
    EMULATOR_CREDENTIALS,
    OverviewItem,
    UniqueValue,
    UniqueValueError,
    bind_models,
    render_template,
    utcnow,
)

logger = logging.getLogger("learning.table")

_SETTINGS_ENDPOINT = object()


def _template_prefix(template: str) -> str:
    return template.split("{", 1)[0]


def _chunks(items: Sequence[OverviewItem], size: int) -> Iterator[Sequence[OverviewItem]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _failed_unique_field(exc: TransactWriteError, fields: Sequence[str]) -> Optional[str]:
    """Return the unique field whose marker write was rejected, if any.

    Marker writes follow the item itself, so reason ``i`` maps to ``fields[i - 1]``.
    """

    reasons = getattr(exc, "cancellation_reasons", None) or []
    for index, reason in enumerate(reasons):
        if index == 0 or reason is None:
            continue
        if reason.code == "ConditionalCheckFailed" and index - 1 < len(fields):
            return fields[index - 1]
    message = f"{exc} {getattr(exc, 'cause', '')}"
    if not reasons and "ConditionalCheckFailed" in message and fields:
        return fields[0]
    return None


class OverviewTable:
    """Create, query and transact against the overview table.

    Values set with :meth:`set_context` are blended into every ``create``,
    ``get``, ``update`` and ``find`` call for models that declare them, so a
    tutorial can set ``account_id`` once and omit it afterwards.
    """

    def __init__(self, settings: OverviewSettings, *, endpoint_url: Any = _SETTINGS_ENDPOINT) -> None:
        if endpoint_url is _SETTINGS_ENDPOINT:
            endpoint_url = settings.endpoint_url
        self._settings = settings
        self._endpoint_url: Optional[str] = endpoint_url
        self._context: Dict[str, Any] = {}
        self._connection: Optional[Connection] = None

        bind_models(settings, endpoint_url=endpoint_url)
        if settings.log_requests:
            logging.getLogger("pynamodb").setLevel(logging.DEBUG)

    @property
    def name(self) -> str:
        return self._settings.table_name

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def set_context(self, **values: Any) -> None:
        self._context.update(values)

    def clear_context(self) -> None:
        self._context.clear()

    # ------------------------------------------------------------------
    # Table lifecycle
    # ------------------------------------------------------------------
    def exists(self) -> bool:
        return OverviewItem.exists()

    def create_table(self) -> bool:
        """Create the table and its indexes; return ``False`` if it already existed."""

        if OverviewItem.exists():
            return False
        OverviewItem.create_table(wait=True)
        logger.info("Created table %s", self.name)
        return True

    def delete_table(self) -> None:
        OverviewItem.delete_table()
        logger.info("Deleted table %s", self.name)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------
    def _blend(self, model: Type[OverviewItem], values: Dict[str, Any]) -> Dict[str, Any]:
        attributes = model.get_attributes()
        blended = {key: value for key, value in self._context.items() if key in attributes}
        blended.update(values)
        return blended

    def prepare(self, model: Type[OverviewItem], **values: Any) -> OverviewItem:
        """Build an unsaved record with the context blended in, e.g. for :meth:`batch_write`."""

        return model.prepare(**self._blend(model, values))

    def create(
        self,
        model: Type[OverviewItem],
        *,
        transaction: Optional[TransactWrite] = None,
        **values: Any,
    ) -> OverviewItem:
        """Create a new record, reserving its unique field values."""

        item = self.prepare(model, **values)

        if transaction is not None:
            self._stage_create(item, transaction)
            return item

        if not model.UNIQUE:
            item.save(condition=model.pk.does_not_exist())
            return item

        try:
            with self.transaction() as write:
                self._stage_create(item, write)
        except TransactWriteError as exc:
            field = _failed_unique_field(exc, model.UNIQUE)
            if field is None:
                raise
            raise UniqueValueError(model.type_name(), field, getattr(item, field)) from exc
        return item

    @staticmethod
    def _stage_create(item: OverviewItem, transaction: TransactWrite) -> None:
        model = type(item)
        transaction.save(item, condition=model.pk.does_not_exist())
        for field in model.UNIQUE:
            marker = UniqueValue.for_value(model.type_name(), field, getattr(item, field))
            transaction.save(marker, condition=UniqueValue.pk.does_not_exist())

    def get(self, model: Type[OverviewItem], **values: Any) -> Optional[OverviewItem]:
        pk, sk = model.key_for(**self._blend(model, values))
        try:
            return model.get(pk, sk)
        except model.DoesNotExist:
            return None

    def update(
        self,
        model: Type[OverviewItem],
        actions: List[Any],
        *,
        transaction: Optional[TransactWrite] = None,
        **values: Any,
    ) -> OverviewItem:
        """Apply update ``actions`` to an existing record identified by ``values``."""

        pk, sk = model.key_for(**self._blend(model, values))
        item = model(pk, sk)
        actions = [*actions, model.updated.set(utcnow())]
        condition = model.pk.exists()
        if transaction is not None:
            transaction.update(item, actions=actions, condition=condition)
        else:
            item.update(actions=actions, condition=condition)
        return item

    def find(self, model: Type[OverviewItem], **kwargs: Any) -> ResultIterator:
        """Query the records of ``model`` in the partition named by the context.

        Keyword arguments that are attributes of ``model`` fill the partition
        key template; the rest are passed through to ``Model.query``.
        """

        attributes = model.get_attributes()
        values = {key: value for key, value in kwargs.items() if key in attributes}
        options = {key: value for key, value in kwargs.items() if key not in attributes}

        pk = render_template(
            model.type_name(), "pk", model.KEY_TEMPLATES["pk"], self._blend(model, values)
        )
        prefix = _template_prefix(model.KEY_TEMPLATES["sk"])
        return model.query(pk, model.sk.startswith(prefix), **options)

    def query_index(
        self,
        model: Type[OverviewItem],
        range_key_condition: Any = None,
        *,
        follow: bool = False,
    ) -> List[OverviewItem]:
        """Query ``gs1`` for ``model``; ``follow`` re-reads full items from the table."""

        results = list(
            model.query(
                model.KEY_TEMPLATES["gs1pk"],
                range_key_condition,
                index_name=OverviewItem.gs1.Meta.index_name,
            )
        )
        if not follow:
            return results
        return list(self._follow(model, results))

    def find_by_type(self, model: Type[OverviewItem], *, follow: bool = False) -> List[OverviewItem]:
        return self.query_index(model, follow=follow)

    def find_by_name(self, model: Type[OverviewItem], name: str, *, follow: bool = True) -> List[OverviewItem]:
        prefix = _template_prefix(model.KEY_TEMPLATES["gs1sk"])
        return self.query_index(model, OverviewItem.gs1sk.startswith(f"{prefix}{name}#"), follow=follow)

    def _follow(self, model: Type[OverviewItem], items: Iterable[OverviewItem]) -> Iterator[OverviewItem]:
        for item in items:
            try:
                yield model.get(item.pk, item.sk)
            except model.DoesNotExist:
                logger.warning("Index entry %s/%s has no primary item", item.pk, item.sk)

    def fetch(self, models: Sequence[Type[OverviewItem]], pk: str) -> Dict[str, List[OverviewItem]]:
        """Return the item collection stored under ``pk`` grouped by record type."""

        collection: Dict[str, List[OverviewItem]] = {model.type_name(): [] for model in models}
        results = OverviewItem.query(pk, filter_condition=OverviewItem.item_type.is_in(*models))
        for item in results:
            collection.setdefault(type(item).type_name(), []).append(item)
        return collection

    # ------------------------------------------------------------------
    # Batches and transactions
    # ------------------------------------------------------------------
    def batch_write(self, items: Sequence[OverviewItem]) -> int:
        """Write ``items`` in groups of ``batch_size``; unique markers are not written."""

        written = 0
        for chunk in _chunks(items, self._settings.batch_size):
            with OverviewItem.batch_write() as batch:
                for item in chunk:
                    batch.save(item)
            written += len(chunk)
            logger.debug("Batch wrote %d item(s)", len(chunk))
        return written

    def connection(self) -> Connection:
        """Return the connection shared by every transaction on this handle."""

        if self._connection is None:
            connection = Connection(region=self._settings.region, host=self._endpoint_url)
            if self._endpoint_url is not None:
                connection.session.set_credentials(*EMULATOR_CREDENTIALS)
            self._connection = connection
        return self._connection

    def transaction(self) -> TransactWrite:
        return TransactWrite(connection=self.connection())


__all__ = ["OverviewTable"]
