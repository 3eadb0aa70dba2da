"""Integration tests for the places, reviews and votes HTTP surface."""

import pytest


def _review_body(name="Café Aurora", place_id=None, rating=5, **extra):
    body = {
        "place": {
            "id": place_id,
            "name": name,
            "address": "San Jose, CR",
            "coords": {"lat": 9.9339, "lng": -84.0833},
        },
        "rating": rating,
        "note": "Capuchino cremoso",
        "tags": "cafe, wifi",
    }
    body.update(extra)
    return body


@pytest.mark.asyncio
class TestReviewSubmission:
    async def test_create_review_registers_place(self, async_client, alice_headers):
        response = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["place"]["id"] == "cafe-aurora"
        review = data["review"]
        assert review["placeId"] == "cafe-aurora"
        assert review["authorUid"] == "uid-alice"
        assert review["userName"] == "Alice"
        assert (review["up"], review["down"], review["myVote"]) == (0, 0, 0)
        assert review["tags"] == ["cafe", "wifi"]
        assert review["city"] == "San Jose, CR"
        assert review["coords"] == {"lat": 9.9339, "lng": -84.0833}
        assert review["photo"] is None
        assert isinstance(review["createdAt"], int)

    async def test_same_name_new_place_gets_suffix(self, async_client, alice_headers):
        first = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        second = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        assert first.json()["place"]["id"] == "cafe-aurora"
        assert second.json()["place"]["id"] == "cafe-aurora-1"

    async def test_selected_place_is_reused(self, async_client, alice_headers, bob_headers):
        await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        response = await async_client.post(
            "/api/reviews", json=_review_body(place_id="cafe-aurora", rating=3), headers=bob_headers
        )
        assert response.json()["place"]["id"] == "cafe-aurora"
        places = (await async_client.get("/api/places")).json()["places"]
        assert [place["id"] for place in places] == ["cafe-aurora"]

    async def test_place_photo_used_when_review_has_none(self, async_client, alice_headers):
        body = _review_body()
        body["place"]["photo"] = "https://example.com/aurora.jpg"
        response = await async_client.post("/api/reviews", json=body, headers=alice_headers)
        assert response.json()["review"]["photo"] == "https://example.com/aurora.jpg"

    @pytest.mark.parametrize("rating", [0, 6, 4.5, "five", None])
    async def test_invalid_rating(self, async_client, alice_headers, rating):
        response = await async_client.post("/api/reviews", json=_review_body(rating=rating), headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_rating"
        assert (await async_client.get("/api/places")).json()["places"] == []

    async def test_missing_place_name(self, async_client, alice_headers):
        response = await async_client.post("/api/reviews", json=_review_body(name="  "), headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "place_name_required"

    async def test_requires_identity(self, async_client):
        response = await async_client.post("/api/reviews", json=_review_body())
        assert response.status_code == 401
        assert response.json()["error"] == "auth_required"

    async def test_rejects_bad_token(self, async_client):
        response = await async_client.post(
            "/api/reviews", json=_review_body(), headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    async def test_rejects_expired_token(self, async_client, token_factory):
        token = token_factory("uid-alice", exp=1)
        response = await async_client.post(
            "/api/reviews", json=_review_body(), headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "token_expired"


@pytest.mark.asyncio
class TestFeed:
    async def test_newest_first_with_my_vote(self, async_client, alice_headers, bob_headers):
        first = (await async_client.post("/api/reviews", json=_review_body("Parque"), headers=alice_headers)).json()
        second = (await async_client.post("/api/reviews", json=_review_body("Mercado"), headers=alice_headers)).json()
        await async_client.post(f"/api/reviews/{first['review']['id']}/vote", json={"value": -1}, headers=bob_headers)

        feed = (await async_client.get("/api/reviews", headers=bob_headers)).json()["reviews"]
        assert [review["id"] for review in feed] == [second["review"]["id"], first["review"]["id"]]
        assert [review["myVote"] for review in feed] == [0, -1]

    async def test_anonymous_feed_has_no_my_vote(self, async_client, alice_headers):
        await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        feed = (await async_client.get("/api/reviews")).json()["reviews"]
        assert len(feed) == 1
        assert feed[0]["myVote"] is None


@pytest.mark.asyncio
class TestVoting:
    async def test_vote_scenario(self, async_client, alice_headers, bob_headers):
        created = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        review_id = created.json()["review"]["id"]
        url = f"/api/reviews/{review_id}/vote"

        first = (await async_client.post(url, json={"value": 1}, headers=bob_headers)).json()
        assert (first["up"], first["down"], first["my"]) == (1, 0, 1)

        repeat = (await async_client.post(url, json={"value": 1}, headers=bob_headers)).json()
        assert (repeat["up"], repeat["down"], repeat["my"]) == (1, 0, 1)

        switch = (await async_client.post(url, json={"value": -1}, headers=bob_headers)).json()
        assert (switch["up"], switch["down"], switch["my"]) == (0, 1, -1)
        assert switch["reviewId"] == review_id

        cleared = (await async_client.post(url, json={"value": 0}, headers=bob_headers)).json()
        assert (cleared["up"], cleared["down"], cleared["my"]) == (0, 0, 0)

    @pytest.mark.parametrize("value", [2, -5, "up", 1.5, True])
    async def test_invalid_vote(self, async_client, alice_headers, value):
        created = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        review_id = created.json()["review"]["id"]
        response = await async_client.post(f"/api/reviews/{review_id}/vote", json={"value": value}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_vote"

    async def test_unknown_review(self, async_client, alice_headers):
        response = await async_client.post("/api/reviews/4242/vote", json={"value": 1}, headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "review_not_found"

    async def test_vote_requires_identity(self, async_client, alice_headers):
        created = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        review_id = created.json()["review"]["id"]
        response = await async_client.post(f"/api/reviews/{review_id}/vote", json={"value": 1})
        assert response.status_code == 401

    async def test_missing_value_is_schema_error(self, async_client, alice_headers):
        created = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        review_id = created.json()["review"]["id"]
        response = await async_client.post(f"/api/reviews/{review_id}/vote", json={}, headers=alice_headers)
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
class TestReputation:
    async def test_karma_and_rank(self, async_client, alice_headers, bob_headers, headers_for):
        created = await async_client.post("/api/reviews", json=_review_body(), headers=alice_headers)
        review_id = created.json()["review"]["id"]
        for index in range(3):
            await async_client.post(
                f"/api/reviews/{review_id}/vote", json={"value": 1}, headers=headers_for(f"voter-{index}")
            )
        await async_client.post("/api/reviews", json=_review_body("Parque"), headers=bob_headers)

        board = (await async_client.get("/api/reputation")).json()["reputation"]
        assert board[0] == {"uid": "uid-alice", "userName": "Alice", "karma": 3, "rank": "Trusted"}
        assert board[1]["uid"] == "uid-bob"
        assert board[1]["rank"] == "Novice"


@pytest.mark.asyncio
class TestPlacesApi:
    async def test_create_place_requires_coords(self, async_client, alice_headers):
        response = await async_client.post("/api/places", json={"name": "Soda Tapia"}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "place_coords_required"

    async def test_create_and_upsert(self, async_client, alice_headers):
        body = {"name": "Soda Tapia", "address": "San Jose", "coords": {"lat": 9.93, "lng": -84.09}}
        created = await async_client.post("/api/places", json=body, headers=alice_headers)
        assert created.status_code == 201
        place = created.json()["place"]
        assert place["id"] == "soda-tapia"

        update = {"id": "soda-tapia", "name": "Soda Tapia Sabana", "address": "Sabana", "coords": {"lat": 9.94, "lng": -84.1}}
        updated = (await async_client.post("/api/places", json=update, headers=alice_headers)).json()["place"]
        assert updated["id"] == "soda-tapia"
        assert updated["name"] == "Soda Tapia Sabana"

    async def test_nearby(self, async_client, alice_headers):
        for name, lat, lng in [("Cerca", 9.934, -84.083), ("Lejos", 10.5, -85.0)]:
            await async_client.post(
                "/api/places", json={"name": name, "coords": {"lat": lat, "lng": lng}}, headers=alice_headers
            )
        response = await async_client.get("/api/places/nearby", params={"lat": 9.9339, "lng": -84.0833})
        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "FeatureCollection"
        assert [feature["properties"]["id"] for feature in data["features"]] == ["cerca"]

    async def test_nearby_rejects_bad_latitude(self, async_client):
        response = await async_client.get("/api/places/nearby", params={"lat": 120, "lng": 0})
        assert response.status_code == 422
