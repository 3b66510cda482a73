"""Tests for row ids and agency/division codes."""
import re

import pytest

from app.core.database.base import generate_ulid
from app.core.errors import ConflictError
from app.features.agencies.repository import AgencyRepository
from app.features.divisions.repository import DivisionRepository


def test_generate_ulid():
    ids = {generate_ulid() for _ in range(50)}

    assert len(ids) == 50
    assert all(len(value) == 26 and value.isalnum() for value in ids)


async def test_agency_code_format(uow):
    code = await AgencyRepository(uow).generate_code()

    assert re.fullmatch(r"AGC-\d{6}", code)


async def test_division_code_format(uow):
    code = await DivisionRepository(uow).generate_code("AGC-123456")

    assert re.fullmatch(r"AGC-123456-\d{2}", code)


async def test_agency_codes_give_up_when_exhausted(uow, monkeypatch):
    repo = AgencyRepository(uow)
    calls = []

    async def always_taken(code):
        calls.append(code)
        return True

    monkeypatch.setattr(repo, "code_exists", always_taken)

    with pytest.raises(ConflictError):
        await repo.generate_code()
    assert len(calls) > 1


async def test_division_codes_give_up_when_exhausted(uow, monkeypatch):
    repo = DivisionRepository(uow)

    async def always_taken(*criteria):
        return True

    monkeypatch.setattr(repo, "exists", always_taken)

    with pytest.raises(ConflictError):
        await repo.generate_code("AGC-123456")
