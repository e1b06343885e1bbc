"""Shared test fixtures for the RAC Dashboard session cache."""

import asyncio
import os
import sys
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.pool import NullPool

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from racdash.database import build_engine, build_session_factory, init_db
from racdash.providers import AccountingDataSource, Credential, TokenProvider
from racdash.session_manager import SessionDataManager


# ---------------------------------------------------------------------------
# Report row builders
# ---------------------------------------------------------------------------

def _row(*values):
    return {"rowType": "Row", "cells": [{"value": v} for v in values]}


def balance_sheet_rows(assets=(), liabilities=(), equity=()):
    """Balance sheet with one section per category; amounts in cell 1."""
    rows = [{"rowType": "Header", "cells": [{"value": ""}, {"value": "31 Mar 2025"}]}]
    for title, amounts in (("Assets", assets), ("Liabilities", liabilities), ("Equity", equity)):
        children = [_row(f"{title} account {i}", str(a)) for i, a in enumerate(amounts)]
        children.append({"rowType": "SummaryRow", "cells": [{"value": f"Total {title}"},
                                                           {"value": str(sum(amounts))}]})
        rows.append({"rowType": "Section", "title": title, "rows": children})
    return rows


def bank_summary_rows(balances):
    """Bank summary with closing balances in cell 4 plus a total row."""
    children = [
        _row(name, "0.00", "0.00", "0.00", str(balance)) for name, balance in balances.items()
    ]
    children.append(_row("Total", "", "", "", str(sum(balances.values()))))
    return [{"rowType": "Section", "title": "", "rows": children}]


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------

class FakeTokenProvider(TokenProvider):
    def __init__(self, names: dict):
        self.names = names

    async def get_credential(self, tenant_id):
        if tenant_id not in self.names:
            return None
        return Credential(tenant_id=tenant_id, tenant_name=self.names[tenant_id],
                          access_token=f"token-{tenant_id}")


class FakeDataSource(AccountingDataSource):
    """
    Serves canned report rows per tenant. A value that is an exception
    instance is raised instead. Tracks how many fetches overlap. When a gate
    event is given, every fetch waits for it after being recorded.
    """

    def __init__(self, balance=None, bank=None, delay=0.01, gate=None):
        self.balance = balance or {}
        self.bank = bank or {}
        self.delay = delay
        self.gate = gate
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _serve(self, source, report, credential, tenant_id):
        self.calls.append((report, tenant_id, credential.access_token))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            value = source.get(tenant_id, [])
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1

    async def fetch_balance_sheet(self, credential, tenant_id, as_of=None):
        return await self._serve(self.balance, "balance", credential, tenant_id)

    async def fetch_bank_summary(self, credential, tenant_id):
        return await self._serve(self.bank, "bank", credential, tenant_id)


class Clock:
    """Controllable naive-UTC clock."""

    def __init__(self, now=None):
        self.now = now or datetime(2025, 3, 31, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-based temp SQLite database with all tables created."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def token_provider():
    return FakeTokenProvider({"t-alpha": "Alpha Pty Ltd", "t-beta": "Beta Ltd", "t-gamma": "Gamma Co"})


@pytest.fixture
def data_source():
    return FakeDataSource(
        balance={
            "t-alpha": balance_sheet_rows(assets=[1000, 500], liabilities=[-400], equity=[1100]),
            "t-beta": balance_sheet_rows(assets=[300], liabilities=[100], equity=[150]),
            "t-gamma": balance_sheet_rows(assets=[50], liabilities=[20], equity=[30]),
        },
        bank={
            "t-alpha": bank_summary_rows({"Cheque": 250.0, "Savings": 750.0}),
            "t-beta": bank_summary_rows({"Operating": 120.5}),
            "t-gamma": bank_summary_rows({"Main": 10.0}),
        },
    )


@pytest.fixture
def manager(session_factory, token_provider, data_source, clock):
    return SessionDataManager(
        session_factory=session_factory,
        token_provider=token_provider,
        data_source=data_source,
        ttl=timedelta(minutes=30),
        clock=clock,
    )
