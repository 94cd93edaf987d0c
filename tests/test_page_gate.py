from __future__ import annotations

import pytest
import requests

from page_gate import PageDisabled, PageGate
from schemas import PageSettings


@pytest.fixture
def gate(client) -> PageGate:
    return PageGate(client)


def test_missing_settings_allow_every_page(gate) -> None:
    assert all(gate.is_allowed(page) for page in ("home", "team", "projects", "faq"))


def test_explicit_false_disables_page(gate, store) -> None:
    store.documents["page_settings"] = {"home": True, "team": True, "projects": True, "faq": False}
    assert not gate.is_allowed("faq")
    with pytest.raises(PageDisabled) as info:
        gate.require("faq")
    assert info.value.page == "faq"

    store.documents["page_settings"]["faq"] = True
    gate.require("faq")


def test_missing_flag_counts_as_enabled(gate, store) -> None:
    store.documents["page_settings"] = {"team": False}
    assert gate.is_allowed("projects")
    assert not gate.is_allowed("team")


def test_unknown_page_is_allowed(gate, store) -> None:
    store.documents["page_settings"] = {"home": False}
    assert gate.is_allowed("contact")


def test_fetch_failure_fails_open(gate, store) -> None:
    store.documents["page_settings"] = {"faq": False}
    store.fail("get-config.php", requests.Timeout("slow"))
    assert gate.is_allowed("faq")


def test_malformed_settings_fail_open(gate, store) -> None:
    store.documents["page_settings"] = {"faq": "sometimes"}
    assert gate.is_allowed("faq")


def test_bad_flag_does_not_reenable_other_pages(gate, store) -> None:
    store.documents["page_settings"] = {"home": True, "team": False, "projects": True, "faq": None}
    assert not gate.is_allowed("team")
    assert gate.is_allowed("faq")
    assert gate.settings() == PageSettings(team=False)


def test_non_object_settings_fail_open(gate, store) -> None:
    store.documents["page_settings"] = ["team"]
    assert gate.is_allowed("team")
