"""
Integration tests for contact service.
"""

import math

import pytest

from contactbook.contacts.schemas import ContactData, ValidationCode
from contactbook.contacts.service import ContactService, SortField, parse_sort_field
from contactbook.shared.exceptions import InvalidArgumentError


async def add_ok(service: ContactService, **fields) -> ContactData:
    result = await service.add(ContactData(**fields))
    assert result.success, result.errors
    assert result.contact is not None
    return result.contact


class TestAddContact:
    """Tests for creating contacts."""

    @pytest.mark.asyncio
    async def test_add_stamps_timestamps(self, contact_service: ContactService):
        result = await contact_service.add(ContactData(first_name="John", primary_phone="+1234567890"))

        assert result.success is True
        assert result.errors == []
        assert result.contact.id is not None and result.contact.id > 0
        assert result.contact.created_at == result.contact.updated_at

    @pytest.mark.asyncio
    async def test_add_ignores_supplied_id(self, contact_service: ContactService):
        result = await contact_service.add(ContactData(id=0, first_name="John"))
        assert result.success
        assert result.contact.id > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("first_name", ["", " ", "J", " J ", "x" * 101])
    async def test_invalid_first_name_persists_nothing(
        self,
        contact_service: ContactService,
        first_name: str,
    ):
        result = await contact_service.add(ContactData(first_name=first_name))

        assert result.success is False
        assert any("First name" in e for e in result.errors)
        assert await contact_service.get_all() == []

    @pytest.mark.asyncio
    async def test_duplicate_phone_names_existing_contact(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="John", primary_phone="+1234567890")

        result = await contact_service.add(ContactData(first_name="Jane", primary_phone="+1234567890"))

        assert result.success is False
        assert result.is_duplicate
        assert len(result.errors) == 1
        assert "John" in result.errors[0]
        assert len(await contact_service.get_all()) == 1

    @pytest.mark.asyncio
    async def test_duplicate_across_phone_fields(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="John", last_name="Doe", secondary_phone="+1234567890")

        result = await contact_service.add(ContactData(first_name="Jane", primary_phone="+1234567890"))

        assert result.errors == ["Phone number already exists for contact: John Doe"]


class TestUpdateContact:
    """Tests for updating contacts."""

    @pytest.mark.asyncio
    async def test_update_preserves_created_at(self, contact_service: ContactService):
        john = await add_ok(contact_service, first_name="John", primary_phone="+1234567890")

        result = await contact_service.update(john.model_copy(update={"notes": "met at conference"}))

        assert result.success, result.errors
        stored = await contact_service.get_by_id(john.id)
        assert stored.notes == "met at conference"
        assert stored.created_at == john.created_at
        assert stored.updated_at > john.updated_at

    @pytest.mark.asyncio
    async def test_update_ignores_caller_created_at(self, contact_service: ContactService):
        john = await add_ok(contact_service, first_name="John")

        result = await contact_service.update(john.model_copy(update={"created_at": None}))

        assert result.success
        assert result.contact.created_at == john.created_at
        assert result.contact.created_at <= result.contact.updated_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contact_id", [None, 0, -3])
    async def test_invalid_id(self, contact_service: ContactService, contact_id):
        result = await contact_service.update(ContactData(id=contact_id, first_name=""))

        assert result.success is False
        assert result.errors == ["Invalid contact ID"]
        assert result.issues[0].code is ValidationCode.INVALID_ID

    @pytest.mark.asyncio
    async def test_not_found_precedes_validation(self, contact_service: ContactService):
        result = await contact_service.update(ContactData(id=999, first_name="x"))

        assert result.errors == ["Contact not found"]

    @pytest.mark.asyncio
    async def test_update_keeping_own_phone_is_not_duplicate(self, contact_service: ContactService):
        john = await add_ok(contact_service, first_name="John", primary_phone="+1234567890")

        result = await contact_service.update(john.model_copy(update={"first_name": "Johnny"}))

        assert result.success, result.errors

    @pytest.mark.asyncio
    async def test_update_to_other_contacts_phone_fails(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="John", primary_phone="+1234567890")
        jane = await add_ok(contact_service, first_name="Jane", primary_phone="+1987654321")

        result = await contact_service.update(jane.model_copy(update={"secondary_phone": "+1234567890"}))

        assert result.success is False
        assert result.is_duplicate
        assert "John" in result.errors[0]
        stored = await contact_service.get_by_id(jane.id)
        assert stored.secondary_phone is None

    @pytest.mark.asyncio
    async def test_invalid_first_name_on_update_persists_nothing(self, contact_service: ContactService):
        john = await add_ok(contact_service, first_name="John")

        result = await contact_service.update(john.model_copy(update={"first_name": "J"}))

        assert result.success is False
        assert (await contact_service.get_by_id(john.id)).first_name == "John"


class TestDeleteAndGet:
    """Tests for delete and lookup."""

    @pytest.mark.asyncio
    async def test_delete(self, contact_service: ContactService):
        john = await add_ok(contact_service, first_name="John")

        assert await contact_service.delete(john.id) is True
        assert await contact_service.get_by_id(john.id) is None
        assert await contact_service.delete(john.id) is False

    @pytest.mark.asyncio
    async def test_delete_non_positive_id(self, contact_service: ContactService):
        assert await contact_service.delete(0) is False
        assert await contact_service.delete(-1) is False

    @pytest.mark.asyncio
    async def test_get_by_id_rejects_non_positive_id(self, contact_service: ContactService):
        with pytest.raises(InvalidArgumentError):
            await contact_service.get_by_id(0)


class TestSearch:
    """Tests for search."""

    @pytest.mark.asyncio
    async def test_search_by_company(self, contact_service: ContactService):
        acme = await add_ok(contact_service, first_name="John", company="Acme Corp")
        await add_ok(contact_service, first_name="Jane", company="Globex")

        results = await contact_service.search("acme")

        assert [c.id for c in results] == [acme.id]

    @pytest.mark.asyncio
    async def test_blank_search_returns_everything(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="John")
        await add_ok(contact_service, first_name="Jane")

        assert len(await contact_service.search("")) == 2
        assert len(await contact_service.search("   ")) == 2
        assert len(await contact_service.search(None)) == 2

    @pytest.mark.asyncio
    async def test_search_names_and_email_case_insensitive(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="John", last_name="Smith", email="jsmith@example.com")
        await add_ok(contact_service, first_name="Jane", last_name="Doe")

        assert [c.first_name for c in await contact_service.search("SMITH")] == ["John"]
        assert [c.first_name for c in await contact_service.search("EXAMPLE")] == ["John"]
        assert [c.first_name for c in await contact_service.search("j")] == ["John", "Jane"]

    @pytest.mark.asyncio
    async def test_search_folds_case_like_sorting(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="Anna", last_name="Stra\u00dfe")
        await add_ok(contact_service, first_name="Bert", last_name="Strasse")

        assert [c.first_name for c in await contact_service.search("STRASSE")] == ["Anna", "Bert"]

    @pytest.mark.asyncio
    async def test_search_phone_is_raw_substring(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="John", primary_phone="(555) 123-4567")
        await add_ok(contact_service, first_name="Jane", secondary_phone="+15559876543")

        assert [c.first_name for c in await contact_service.search("123-45")] == ["John"]
        assert [c.first_name for c in await contact_service.search("9876")] == ["Jane"]
        assert await contact_service.search("5551234567") == []


class TestSortingAndPagination:
    """Tests for sorted listing and pagination."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("FirstName", SortField.FIRST_NAME),
            ("lastname", SortField.LAST_NAME),
            ("last_name", SortField.LAST_NAME),
            ("Company", SortField.COMPANY),
            ("EMAIL", SortField.EMAIL),
            ("CreatedAt", SortField.CREATED_AT),
            ("phone", SortField.FIRST_NAME),
            (None, SortField.FIRST_NAME),
        ],
    )
    def test_parse_sort_field(self, value, expected):
        assert parse_sort_field(value) is expected

    @pytest.mark.asyncio
    async def test_sort_by_last_name_missing_values_lowest(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="Ann", last_name="Young")
        await add_ok(contact_service, first_name="Bob")
        await add_ok(contact_service, first_name="Cid", last_name="adams")

        ascending = await contact_service.sorted_list("LastName", ascending=True)
        descending = await contact_service.sorted_list("LastName", ascending=False)

        assert [c.first_name for c in ascending] == ["Bob", "Cid", "Ann"]
        assert [c.first_name for c in descending] == ["Ann", "Cid", "Bob"]

    @pytest.mark.asyncio
    async def test_unknown_field_sorts_by_first_name(self, contact_service: ContactService):
        for name in ("Mia", "Abe", "Zoe"):
            await add_ok(contact_service, first_name=name)

        contacts = await contact_service.sorted_list("nonsense")

        assert [c.first_name for c in contacts] == ["Abe", "Mia", "Zoe"]

    @pytest.mark.asyncio
    async def test_sort_by_created_at(self, contact_service: ContactService):
        for name in ("Mia", "Abe", "Zoe"):
            await add_ok(contact_service, first_name=name)

        contacts = await contact_service.sorted_list("createdAt", ascending=False)

        assert [c.first_name for c in contacts] == ["Zoe", "Abe", "Mia"]

    @pytest.mark.asyncio
    async def test_pages_reconstruct_sorted_list(self, contact_service: ContactService):
        names = ["Hal", "Eve", "Bea", "Gus", "Ada", "Fay", "Cal", "Dan", "Ivy", "Jon", "Kim"]
        for name in names:
            await add_ok(contact_service, first_name=name)
        full = await contact_service.sorted_list("firstname")

        for size in range(1, 13):
            first = await contact_service.paginate(1, size, "firstname")
            assert first.total == len(names)
            assert first.pages == math.ceil(len(names) / size)

            collected = []
            for page in range(1, first.pages + 1):
                collected.extend((await contact_service.paginate(page, size, "firstname")).items)
            assert [c.id for c in collected] == [c.id for c in full]

    @pytest.mark.asyncio
    async def test_paginate_clamps_arguments(self, contact_service: ContactService):
        for name in ("Ann", "Bob", "Cid"):
            await add_ok(contact_service, first_name=name)

        page = await contact_service.paginate(page_number=0, page_size=0)

        assert page.page == 1
        assert page.page_size == 1
        assert page.pages == 3
        assert [c.first_name for c in page.items] == ["Ann"]

    @pytest.mark.asyncio
    async def test_paginate_past_end_is_empty(self, contact_service: ContactService):
        await add_ok(contact_service, first_name="Ann")

        page = await contact_service.paginate(page_number=5, page_size=10)

        assert page.items == []
        assert page.total == 1
        assert page.pages == 1

    @pytest.mark.asyncio
    async def test_paginate_empty_store(self, contact_service: ContactService):
        page = await contact_service.paginate(1, 10)
        assert page.items == []
        assert page.total == 0
        assert page.pages == 0
