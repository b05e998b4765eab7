"""Tests for Vigil integration availability checks."""

import asyncio

import pytest

from vigil.integrations import InMemoryAccountStore, IntegrationChecker, connection_instructions


class SlowAccountStore:
    """Answers after a delay so concurrent lookups can be observed."""

    def __init__(self, connected):
        self.connected = set(connected)
        self.in_flight = 0
        self.peak = 0

    async def is_integration_connected(self, user_id, integration_id):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return integration_id in self.connected


class TestIntegrationChecker:
    @pytest.mark.asyncio
    async def test_no_requirements(self):
        check = await IntegrationChecker(InMemoryAccountStore()).check("u-1", ())
        assert check.available is True
        assert check.missing == []

    @pytest.mark.asyncio
    async def test_all_connected(self):
        accounts = InMemoryAccountStore({"u-1": ["gmail", "calendar"]})
        check = await IntegrationChecker(accounts).check("u-1", ("gmail", "calendar"))
        assert check.available is True

    @pytest.mark.asyncio
    async def test_missing_in_declaration_order(self):
        accounts = InMemoryAccountStore({"u-1": ["contacts"]})
        check = await IntegrationChecker(accounts).check("u-1", ("gmail", "contacts", "calendar"))
        assert check.available is False
        assert check.missing == ["gmail", "calendar"]

    @pytest.mark.asyncio
    async def test_other_users_connections_do_not_count(self):
        accounts = InMemoryAccountStore({"u-2": ["gmail"]})
        check = await IntegrationChecker(accounts).check("u-1", ("gmail",))
        assert check.missing == ["gmail"]

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self):
        accounts = SlowAccountStore(["gmail"])
        check = await IntegrationChecker(accounts).check("u-1", ("gmail", "calendar", "contacts"))
        assert accounts.peak == 3
        assert check.missing == ["calendar", "contacts"]

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self):
        accounts = InMemoryAccountStore()
        checker = IntegrationChecker(accounts)
        accounts.connect("u-1", "gmail")
        assert (await checker.check("u-1", ("gmail",))).available is True
        accounts.disconnect("u-1", "gmail")
        assert (await checker.check("u-1", ("gmail",))).available is False


class TestConnectionInstructions:
    def test_known_integrations(self):
        assert connection_instructions(["gmail", "calendar"]) == (
            "Connect Gmail in Settings > Integrations > Gmail. "
            "Connect Calendar in Settings > Integrations > Calendar"
        )

    def test_unknown_integration(self):
        assert connection_instructions(["slack"]) == "Connect slack in Settings > Integrations"
