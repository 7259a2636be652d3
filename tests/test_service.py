"""Tests for the link service: create / edit / toggle / delete / access / list."""

import re
from datetime import timedelta

import pytest

from shortly.core.errors import (
    EmptySlug,
    InvalidExpiry,
    InvalidStatusFilter,
    InvalidUrl,
    LinkDisabled,
    LinkExpired,
    LinkNotFound,
    OwnerNotFound,
    SlugLengthInvalid,
    SlugReserved,
    SlugTaken,
    UnsupportedScheme,
    ValidationError,
)
from shortly.core.lifecycle import LinkStatus
from shortly.models.records import Account, AccountSnapshot
from shortly.service import LinkService
from shortly.store.accounts import ACCOUNTS_KEY
from conftest import T0

OWNER = "usr_owner"
OTHER = "usr_other"


@pytest.fixture(autouse=True)
def owners(blobs, account_store):
    """Register OWNER and OTHER as known accounts."""
    accounts = [
        Account(id=OWNER, email="owner@example.com"),
        Account(id=OTHER, email="other@example.com"),
    ]
    blobs.put(ACCOUNTS_KEY, AccountSnapshot(accounts=accounts).model_dump_json())
    account_store.load()


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreateLink:
    def test_scheme_less_destination_random_slug(self, service):
        link = service.create_link(OWNER, "example.com/page")
        assert link.destination_url == "https://example.com/page"
        assert re.fullmatch(r"[a-z0-9]{6}", link.slug)
        assert link.click_count == 0
        assert link.owner_id == OWNER
        assert link.created_at == T0
        assert link.expires_at is None
        assert service.link_status(link) is LinkStatus.ACTIVE

    def test_requested_slug_sanitized(self, service):
        link = service.create_link(OWNER, "https://example.com", requested_slug="Spring Sale")
        assert link.slug == "spring-sale"
        assert service.short_url(link) == "https://sho.rt/spring-sale"

    def test_slug_too_short(self, service):
        with pytest.raises(SlugLengthInvalid):
            service.create_link(OWNER, "example.com", requested_slug="ab")
        assert service.links.all() == []

    def test_duplicate_slug(self, service):
        service.create_link(OWNER, "example.com/a", requested_slug="promo")
        with pytest.raises(SlugTaken):
            service.create_link(OTHER, "example.com/b", requested_slug="Promo")
        assert len(service.links) == 1

    def test_reserved_slug(self, service):
        with pytest.raises(SlugReserved):
            service.create_link(OWNER, "example.com", requested_slug="admin")

    def test_bad_destination(self, service):
        with pytest.raises(InvalidUrl):
            service.create_link(OWNER, "   ")
        with pytest.raises(UnsupportedScheme):
            service.create_link(OWNER, "ftp://example.com/file")

    def test_bad_expiry(self, service):
        with pytest.raises(InvalidExpiry):
            service.create_link(OWNER, "example.com", expires_at_raw="someday")

    def test_created_disabled(self, service):
        link = service.create_link(OWNER, "example.com", enabled=False)
        assert service.link_status(link) is LinkStatus.DISABLED

    def test_owner_required(self, service):
        with pytest.raises(ValueError):
            service.create_link("", "example.com")

    def test_unknown_owner_rejected(self, service):
        with pytest.raises(OwnerNotFound) as exc:
            service.create_link("usr_nobody", "example.com", requested_slug="promo")
        assert exc.value.field == "owner_id"
        assert service.links.all() == []
        assert not service.links.exists("promo")

    def test_signed_in_owner_accepted(self, service):
        account = service.accounts.sign_in("new@example.com")
        link = service.create_link(account.id, "example.com")
        assert link.owner_id == account.id

    def test_without_account_store_any_owner_accepted(self, link_store, settings, clock):
        bare = LinkService(link_store, settings=settings, clock=clock)
        assert bare.create_link("usr_anyone", "example.com").owner_id == "usr_anyone"

    def test_past_expiry_then_sweep(self, service):
        past = (T0 - timedelta(seconds=1)).isoformat()
        link = service.create_link(OWNER, "example.com", expires_at_raw=past)
        assert link.enabled is True

        assert service.lifecycle.sweep_expired() == 1
        assert service.get_link(link.id).enabled is False
        with pytest.raises(LinkExpired):
            service.access_link(link.id)


# ---------------------------------------------------------------------------
# Edit / toggle / delete
# ---------------------------------------------------------------------------

class TestEditLink:
    def test_partial_edit(self, service):
        link = service.create_link(OWNER, "example.com", requested_slug="promo")
        edited = service.edit_link(link.id, destination_raw="example.org/new")
        assert edited.destination_url == "https://example.org/new"
        assert edited.slug == "promo"

    def test_keep_own_slug(self, service):
        link = service.create_link(OWNER, "example.com", requested_slug="promo")
        assert service.edit_link(link.id, requested_slug="PROMO").slug == "promo"

    def test_slug_taken_by_other_link(self, service):
        service.create_link(OWNER, "example.com", requested_slug="taken")
        link = service.create_link(OWNER, "example.com", requested_slug="mine")
        with pytest.raises(SlugTaken):
            service.edit_link(link.id, requested_slug="taken")
        assert service.get_link(link.id).slug == "mine"

    def test_blank_slug_rejected_on_edit(self, service):
        link = service.create_link(OWNER, "example.com")
        with pytest.raises(EmptySlug):
            service.edit_link(link.id, requested_slug="  ")

    def test_invalid_field_leaves_record_untouched(self, service):
        link = service.create_link(OWNER, "example.com", requested_slug="promo")
        with pytest.raises(InvalidUrl):
            service.edit_link(link.id, destination_raw="", requested_slug="renamed")
        assert service.get_link(link.id) == link

    def test_expiry_unset_vs_cleared(self, service):
        future = T0 + timedelta(days=3)
        link = service.create_link(OWNER, "example.com", expires_at_raw=future)
        assert service.edit_link(link.id, destination_raw="example.net").expires_at == future
        assert service.edit_link(link.id, expires_at_raw=None).expires_at is None

    def test_expired_revived_by_future_expiry(self, service):
        link = service.create_link(OWNER, "example.com", expires_at_raw=T0 - timedelta(hours=1))
        service.list_links(OWNER)
        assert service.link_status(service.get_link(link.id)) is LinkStatus.EXPIRED

        revived = service.edit_link(link.id, expires_at_raw=T0 + timedelta(days=1), enabled=True)
        assert service.link_status(revived) is LinkStatus.ACTIVE
        assert service.access_link(link.id) == "https://example.com/"

    def test_enabling_with_past_expiry_stays_expired(self, service):
        link = service.create_link(OWNER, "example.com", enabled=False)
        edited = service.edit_link(link.id, enabled=True, expires_at_raw=T0 - timedelta(minutes=1))
        assert edited.enabled is False
        assert service.link_status(edited) is LinkStatus.EXPIRED

    def test_other_owner_sees_not_found(self, service):
        link = service.create_link(OWNER, "example.com")
        with pytest.raises(LinkNotFound):
            service.edit_link(link.id, destination_raw="example.org", owner_id=OTHER)

    def test_missing_link(self, service):
        with pytest.raises(LinkNotFound):
            service.edit_link("lnk_missing", enabled=False)


class TestToggleLink:
    def test_toggle_round_trip(self, service):
        link = service.create_link(OWNER, "example.com")
        assert service.toggle_link(link.id).enabled is False
        with pytest.raises(LinkDisabled):
            service.access_link(link.id)
        assert service.toggle_link(link.id).enabled is True

    def test_toggle_on_expired_refused(self, service, clock):
        link = service.create_link(OWNER, "example.com", expires_at_raw=T0 + timedelta(seconds=1))
        clock.advance(seconds=2)
        service.lifecycle.sweep_expired()
        before = service.get_link(link.id)

        with pytest.raises(LinkExpired):
            service.lifecycle.set_enabled(link.id, True)
        with pytest.raises(LinkExpired):
            service.toggle_link(link.id)
        assert service.get_link(link.id) == before


class TestDeleteLink:
    def test_delete(self, service):
        link = service.create_link(OWNER, "example.com", requested_slug="promo")
        service.delete_link(link.id)
        with pytest.raises(LinkNotFound):
            service.get_link(link.id)
        # Hard delete: the slug is free again
        assert service.create_link(OWNER, "example.com", requested_slug="promo").slug == "promo"

    def test_delete_missing(self, service):
        with pytest.raises(LinkNotFound):
            service.delete_link("lnk_missing")

    def test_delete_scoped_to_owner(self, service):
        link = service.create_link(OWNER, "example.com")
        with pytest.raises(LinkNotFound):
            service.delete_link(link.id, owner_id=OTHER)
        assert service.get_link(link.id)


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------

class TestAccess:
    def test_access_counts_one_click(self, service):
        link = service.create_link(OWNER, "example.com/page")
        assert service.access_link(link.id) == "https://example.com/page"
        assert service.links.find_by_id(link.id).click_count == 1

    def test_access_by_slug_case_insensitive(self, service):
        link = service.create_link(OWNER, "example.com", requested_slug="promo")
        assert service.access_slug("PROMO") == "https://example.com/"
        assert service.get_link(link.id).click_count == 1

    def test_unknown_slug(self, service):
        with pytest.raises(LinkNotFound):
            service.access_slug("nothing")

    def test_clicks_never_decrease(self, service):
        link = service.create_link(OWNER, "example.com")
        counts = []
        for _ in range(3):
            service.access_link(link.id)
            counts.append(service.get_link(link.id).click_count)
        service.toggle_link(link.id)
        with pytest.raises(LinkDisabled):
            service.access_link(link.id)
        counts.append(service.get_link(link.id).click_count)
        assert counts == [1, 2, 3, 3]


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListLinks:
    @pytest.fixture
    def populated(self, service):
        active = service.create_link(OWNER, "example.com/shoes", requested_slug="shoes")
        disabled = service.create_link(OWNER, "example.com/hats", requested_slug="hats", enabled=False)
        expired = service.create_link(OWNER, "blog.example.org/post", requested_slug="post",
                                      expires_at_raw=T0 - timedelta(days=1))
        service.create_link(OTHER, "example.com/shoes", requested_slug="other-shoes")
        return active, disabled, expired

    def test_owner_scoped_most_recent_first(self, service, populated):
        assert [l.slug for l in service.list_links(OWNER)] == ["post", "hats", "shoes"]
        assert [l.slug for l in service.list_links(OTHER)] == ["other-shoes"]

    def test_listing_sweeps(self, service, populated):
        _, _, expired = populated
        service.list_links(OWNER)
        assert service.get_link(expired.id).enabled is False

    @pytest.mark.parametrize("status, expected", [
        (LinkStatus.ACTIVE, ["shoes"]),
        ("disabled", ["hats"]),
        ("expired", ["post"]),
        ("all", ["post", "hats", "shoes"]),
        (None, ["post", "hats", "shoes"]),
    ])
    def test_status_filter(self, service, populated, status, expected):
        assert [l.slug for l in service.list_links(OWNER, status=status)] == expected

    @pytest.mark.parametrize("query, expected", [
        ("SHO", ["shoes"]),
        ("example.org", ["post"]),
        ("example", ["post", "hats", "shoes"]),
        ("  ", ["post", "hats", "shoes"]),
        ("nomatch", []),
    ])
    def test_query_filter(self, service, populated, query, expected):
        assert [l.slug for l in service.list_links(OWNER, query=query)] == expected

    def test_combined_filters(self, service, populated):
        assert service.list_links(OWNER, query="example.com", status="expired") == []

    @pytest.mark.parametrize("status", ["archived", "ACTIVE", "open"])
    def test_unknown_status(self, service, populated, status):
        with pytest.raises(InvalidStatusFilter) as exc:
            service.list_links(OWNER, status=status)
        assert isinstance(exc.value, ValidationError)
        assert exc.value.field == "status"


class TestUniquenessInvariant:
    def test_slugs_stay_unique(self, service):
        for raw in ["promo", "PROMO", "Promo ", "pro-mo", "pro_mo", None, None, None]:
            try:
                service.create_link(OWNER, "example.com", requested_slug=raw)
            except SlugTaken:
                pass
        slugs = [l.slug.lower() for l in service.links.all()]
        assert len(slugs) == len(set(slugs)) == 6
