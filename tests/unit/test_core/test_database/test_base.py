"""Tests for the declarative base helpers."""

from __future__ import annotations

import time
import uuid

from chat_service.core.database import NAMING_CONVENTION, Base, generate_uuid7


def test_uuid7_version_and_variant():
    value = generate_uuid7()

    assert value.version == 7
    assert value.variant == uuid.RFC_4122


def test_uuid7_embeds_millisecond_timestamp():
    before = int(time.time() * 1000)
    value = generate_uuid7()
    after = int(time.time() * 1000)

    embedded = int.from_bytes(value.bytes[:6], "big")
    # A same-millisecond bump can carry into the timestamp only by one
    assert before <= embedded <= after + 1


def test_uuid7_strictly_increasing():
    values = [generate_uuid7() for _ in range(1000)]

    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_naming_convention_applied():
    assert Base.metadata.naming_convention["pk"] == NAMING_CONVENTION["pk"]
