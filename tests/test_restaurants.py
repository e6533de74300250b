"""
Tests for the restaurant registry service and router.
"""
from unittest.mock import patch

import pytest

from restostar.core.errors import Forbidden, InvalidSlug, NotFound, SlugConflict, ValidationError
from restostar.core.strings import PUBLIC_ID_ALPHABET
from restostar.services.restaurants import RestaurantService

from conftest import make_restaurant


class TestRestaurantService:
    """Tests for RestaurantService."""

    def test_create_normalizes_slug(self, db, owner):
        restaurant = RestaurantService(db).create_restaurant(
            owner,
            name="  Joe's Diner ",
            slug="Joe's Diner & Bar",
            review_url="https://g.page/joes/review",
        )

        assert restaurant.slug == "joes-diner-bar"
        assert restaurant.name == "Joe's Diner"
        assert restaurant.email_tone == "assist"
        assert len(restaurant.public_id) == 10
        assert set(restaurant.public_id) <= set(PUBLIC_ID_ALPHABET)

    def test_duplicate_slug_same_owner(self, db, owner, restaurant):
        with pytest.raises(SlugConflict):
            RestaurantService(db).create_restaurant(
                owner, name="Another", slug="Joes Diner", review_url="https://example.com/r",
            )

    def test_lost_slug_race_is_conflict(self, db, owner, restaurant):
        service = RestaurantService(db)
        # The pre-check misses the row a concurrent create just committed
        slug_taken = RestaurantService._slug_taken
        checks = []

        def check_misses_once(self, owner_id, slug, exclude_id=None):
            checks.append(slug)
            if len(checks) == 1:
                return False
            return slug_taken(self, owner_id, slug, exclude_id)

        with patch.object(RestaurantService, "_slug_taken", check_misses_once):
            with pytest.raises(SlugConflict):
                service.create_restaurant(
                    owner, name="Dup", slug="joes-diner", review_url="https://example.com/r",
                )

        assert len(checks) == 2
        assert [r.id for r in service.list_owned(owner)] == [restaurant.id]

    def test_same_slug_different_owner(self, db, other_owner, restaurant):
        created = RestaurantService(db).create_restaurant(
            other_owner, name="Joe's Diner", slug="joes-diner", review_url="https://example.com/r",
        )

        assert created.slug == restaurant.slug
        assert created.public_id != restaurant.public_id

    def test_slug_that_normalizes_to_nothing(self, db, owner):
        with pytest.raises(InvalidSlug):
            RestaurantService(db).create_restaurant(
                owner, name="Symbols", slug="&&&", review_url="https://example.com/r",
            )

    def test_review_url_must_be_http(self, db, owner):
        with pytest.raises(ValidationError):
            RestaurantService(db).create_restaurant(
                owner, name="Joe", slug="joe", review_url="ftp://example.com",
            )

    def test_public_lookup_normalizes_slug(self, db, restaurant):
        view = RestaurantService(db).get_public(restaurant.public_id, "Joe's Diner")

        assert view is not None
        assert view.name == "Joe's Diner"
        assert view.review_url == restaurant.review_url

    def test_public_lookup_wrong_slug(self, db, restaurant):
        assert RestaurantService(db).get_public(restaurant.public_id, "other") is None

    def test_update_keeps_unmentioned_fields(self, db, owner, restaurant):
        updated = RestaurantService(db).update_restaurant(owner, restaurant.id, {"name": "Joe's Bistro"})

        assert updated.name == "Joe's Bistro"
        assert updated.slug == "joes-diner"
        assert updated.review_url == "https://g.page/joes-diner/review"

    def test_update_slug_to_own_value(self, db, owner, restaurant):
        updated = RestaurantService(db).update_restaurant(owner, restaurant.id, {"slug": "Joes Diner"})

        assert updated.slug == "joes-diner"

    def test_update_slug_conflict(self, db, owner, restaurant):
        second = make_restaurant(db, owner, public_id="second2345", slug="second")

        with pytest.raises(SlugConflict):
            RestaurantService(db).update_restaurant(owner, second.id, {"slug": "joes-diner"})

    def test_other_owner_cannot_update(self, db, other_owner, restaurant):
        with pytest.raises(Forbidden):
            RestaurantService(db).update_restaurant(other_owner, restaurant.id, {"name": "Mine now"})

    def test_list_owned_newest_first(self, db, owner, other_owner):
        service = RestaurantService(db)
        first = service.create_restaurant(owner, name="First", slug="first", review_url="https://example.com/1")
        second = service.create_restaurant(owner, name="Second", slug="second", review_url="https://example.com/2")
        service.create_restaurant(other_owner, name="Theirs", slug="theirs", review_url="https://example.com/3")

        owned = service.list_owned(owner)

        assert {r.id for r in owned} == {first.id, second.id}


class TestRestaurantsRouter:
    """Tests for /api/restaurants endpoints."""

    def test_list_empty(self, client, owner, auth_headers):
        response = client.get("/api/restaurants", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"restaurants": [], "total": 0}

    def test_create(self, client, owner, auth_headers):
        response = client.post(
            "/api/restaurants",
            headers=auth_headers,
            json={"name": "Joe's Diner", "slug": "Joe's Diner", "review_url": "https://g.page/joe"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "joes-diner"
        assert data["email_tone"] == "assist"

    def test_create_conflict(self, client, restaurant, auth_headers):
        response = client.post(
            "/api/restaurants",
            headers=auth_headers,
            json={"name": "Dup", "slug": "joes-diner", "review_url": "https://g.page/joe"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "slug_conflict"

    def test_create_requires_auth(self, client):
        response = client.post(
            "/api/restaurants",
            json={"name": "Joe", "slug": "joe", "review_url": "https://g.page/joe"},
        )

        assert response.status_code == 401

    def test_get_other_owners_restaurant(self, client, restaurant, other_auth_headers):
        response = client.get(f"/api/restaurants/{restaurant.id}", headers=other_auth_headers)

        assert response.status_code == 403

    def test_get_missing_restaurant(self, client, owner, auth_headers):
        response = client.get(
            "/api/restaurants/00000000-0000-0000-0000-000000000000",
            headers=auth_headers,
        )

        assert response.status_code == 404

    def test_patch(self, client, restaurant, auth_headers):
        response = client.patch(
            f"/api/restaurants/{restaurant.id}",
            headers=auth_headers,
            json={"email_tone": "assist", "logo_url": "https://cdn.example.com/logo.png"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["email_tone"] == "assist"
        assert data["logo_url"] == "https://cdn.example.com/logo.png"
        assert data["name"] == "Joe's Diner"

    def test_public_view_hides_internal_ids(self, client, restaurant):
        response = client.get(f"/api/public/restaurants/{restaurant.public_id}/joes-diner")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Joe's Diner"
        assert "id" not in data
        assert "owner_id" not in data

    def test_public_view_not_found(self, client, restaurant):
        response = client.get("/api/public/restaurants/nope/joes-diner")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
