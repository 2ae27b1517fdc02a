"""
Shared fixtures for the EPG grabber tests.
"""
import asyncio

import pytest

from mitv_epg.services import grab_service
from mitv_epg.services.listing_types import CutoffPolicy


@pytest.fixture
def policy() -> CutoffPolicy:
    return CutoffPolicy(cutoff_hour=3)


@pytest.fixture(autouse=True)
def fresh_grab_lock(monkeypatch):
    monkeypatch.setattr(grab_service, "_grab_lock", asyncio.Lock())
