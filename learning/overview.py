"""Walkthrough of the single-table schema against a local emulator."""
from __future__ import annotations

import calendar
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, TextIO

from .config import OverviewSettings
from .emulator import LocalEmulator
from .schema import Account, Address, Invoice, OverviewItem, Product, User, utcnow
from .table import OverviewTable

logger = logging.getLogger("learning.overview")

ACCOUNT_NAME = "Acme Rockets"
USER_NAME = "Road Runner"
USER_EMAIL = "roadrunner@acme.com"


def one_month_before(moment: datetime) -> datetime:
    """Return the same instant one calendar month earlier, clamping the day."""

    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


@dataclass
class OverviewReport:
    """Figures gathered while the tutorial runs."""

    account_id: str = ""
    users_created: int = 0
    admin_users: int = 0
    users_over_100: int = 0
    emails_listed: int = 0
    pages_read: int = 0
    users_paged: int = 0
    invoices_this_month: int = 0
    user_balance: float = 0
    account_balance: float = 0
    collection: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)


class OverviewTutorial:
    """Run each step of the overview in order and print what it did."""

    def __init__(self, table: OverviewTable, settings: OverviewSettings, out: TextIO | None = None) -> None:
        self._table = table
        self._settings = settings
        self._out = out or sys.stdout

    def _say(self, message: str) -> None:
        print(message, file=self._out)

    def _collection_sizes(self, collection: Dict[str, List[OverviewItem]]) -> Dict[str, int]:
        return {name: len(items) for name, items in collection.items()}

    def run(self) -> OverviewReport:
        table = self._table
        report = OverviewReport()

        # Normally the table is provisioned separately.
        table.create_table()
        self._say(f"Created table {table.name}")

        account = table.create(Account, name=ACCOUNT_NAME)
        report.account_id = account.id
        self._say(f"Created account {account.name} ({account.id})")

        table.set_context(account_id=account.id)

        user = table.create(User, name=USER_NAME, email=USER_EMAIL, address=Address())
        self._say(f"Created user {user.name} ({user.id})")

        user = table.get(User, email=USER_EMAIL)
        self._say(f"Fetched user by email: {user.name if user else None}")

        matches = table.find_by_name(User, USER_NAME, follow=True)
        self._say(f"Fetched user by name via gs1: {[match.email for match in matches]}")

        users = list(table.find(User))
        self._say(f"Users in account: {len(users)}")

        admins = list(table.find(User, filter_condition=User.role == "admin"))
        report.admin_users = len(admins)
        self._say(f"Admin users before promotion: {len(admins)}")

        user = table.update(User, [User.balance.set(0), User.role.set("admin")], email=USER_EMAIL)
        self._say(f"Promoted {user.name} to {user.role}")

        user = table.update(User, [User.address.zip.set("98034")], email=USER_EMAIL)
        self._say(f"Set address zip to {user.address.zip}")

        user = table.update(User, [User.balance.set(110)], email=USER_EMAIL)
        user = table.update(User, [User.balance.add(10)], email=USER_EMAIL)
        user = table.update(User, [User.balance.set(User.balance - 2)], email=USER_EMAIL)
        self._say(f"Balance after set/add/subtract: {user.balance:g}")

        rich = list(table.find(User, account_id=account.id, filter_condition=User.balance > 100))
        report.users_over_100 = len(rich)
        self._say(f"Users with a balance over 100: {len(rich)}")

        collection = table.fetch([Account, User, Invoice], account.pk)
        self._say(f"Account collection: {self._collection_sizes(collection)}")

        batch = [
            table.prepare(User, name=f"user{index}", email=f"user{index}@acme.com")
            for index in range(1, self._settings.user_count + 1)
        ]
        report.users_created = table.batch_write(batch)
        self._say(f"Batch created {report.users_created} users")

        emails = [item.email for item in table.find(User, attributes_to_get=["email", "_type"])]
        report.emails_listed = len(emails)
        self._say(f"Listed {len(emails)} email addresses")

        report.pages_read, report.users_paged = self._page_users()
        self._say(f"Read {report.users_paged} users in {report.pages_read} page(s)")

        product = table.create(Product, name="rocket", price=10.99)
        self._say(f"Created product {product.name} at {product.price}")

        with table.transaction() as transaction:
            table.create(
                Invoice,
                transaction=transaction,
                product=product.name,
                quantity=1,
                total=product.price,
            )
            table.update(User, [User.balance.add(product.price)], transaction=transaction, email=USER_EMAIL)
            table.update(Account, [Account.balance.add(product.price)], transaction=transaction, id=account.id)
        self._say("Invoiced the product and updated balances in one transaction")

        collection = table.fetch([Account, User, Invoice], account.pk)
        report.collection = self._collection_sizes(collection)
        report.account_balance = collection["Account"][0].balance
        user = table.get(User, email=USER_EMAIL)
        report.user_balance = user.balance
        self._say(f"Account collection: {report.collection}")

        # gs1sk is invoice#<iso date>#<id> and ISO dates sort.
        now = utcnow()
        since = one_month_before(now)
        invoices = table.query_index(
            Invoice,
            Invoice.gs1sk.between(f"invoice#{_iso(since)}", f"invoice#{_iso(now)}"),
            follow=True,
        )
        report.invoices_this_month = len(invoices)
        self._say(f"Invoices this month: {len(invoices)}")

        for model in (Account, User, Invoice):
            report.by_type[model.type_name()] = len(table.find_by_type(model))
        self._say(f"Items by type: {report.by_type}")

        table.delete_table()
        self._say(f"Deleted table {table.name}")
        return report

    def _page_users(self) -> tuple[int, int]:
        pages = 0
        total = 0
        start = None
        while True:
            results = self._table.find(
                User,
                limit=self._settings.page_size,
                page_size=self._settings.page_size,
                last_evaluated_key=start,
            )
            page = list(results)
            if not page:
                break
            pages += 1
            total += len(page)
            start = results.last_evaluated_key
            if not start:
                break
        return pages, total


def run_overview(
    settings: OverviewSettings,
    out: TextIO | None = None,
    *,
    emulator: Optional[LocalEmulator] = None,
    table_factory: Callable[[OverviewSettings], OverviewTable] = OverviewTable,
) -> int:
    """Start the emulator, run the tutorial and always tear the emulator down."""

    if emulator is None and settings.spawn_emulator:
        emulator = LocalEmulator(settings)

    try:
        if emulator is not None:
            emulator.start()
        table = table_factory(settings)
        report = OverviewTutorial(table, settings, out).run()
    except Exception:
        logger.exception("Overview tutorial failed")
        return 1
    finally:
        if emulator is not None:
            try:
                emulator.stop()
            except OSError:
                logger.warning("Failed to stop the emulator cleanly", exc_info=True)

    logger.info(
        "Overview complete: account %s, %d users batch created",
        report.account_id,
        report.users_created,
    )
    return 0


__all__ = ["OverviewReport", "OverviewTutorial", "one_month_before", "run_overview"]
