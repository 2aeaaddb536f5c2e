"""
End-to-end tests for the HTTP API.

Requests go through the real routes and services against in-memory
SQLite; the OpenAI-backed collaborators are fakes (see conftest.py).
"""

import uuid

import pytest


ARGUMENT = "Ein Tempolimit von 130 km/h senkt laut Destatis die Zahl schwerer Unfälle."
REPLY = "Die Unfallzahlen sind seit Jahren rückläufig, auch ohne Tempolimit."


def as_user(user_id):
    return {"X-User-Id": user_id}


async def create_debate(client, user_id="creator", title="Tempolimit auf Autobahnen"):
    response = await client.post(
        "/api/debates",
        json={"title": title, "description": "Sollte Deutschland ein Tempolimit einführen?"},
        headers=as_user(user_id),
    )
    assert response.status_code == 201, response.text
    return response.json()


async def submit(client, debate_id, user_id="author", **body):
    payload = {"text": ARGUMENT, "type": "Pro"}
    payload.update(body)
    return await client.post(
        f"/api/debates/{debate_id}/arguments", json=payload, headers=as_user(user_id)
    )


async def reputation(client, user_id):
    response = await client.get(f"/api/users/{user_id}/reputation")
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.json() == {"status": "healthy"}


# =============================================================================
# DEBATES
# =============================================================================

@pytest.mark.asyncio
async def test_create_and_fetch_debate(client):
    debate = await create_debate(client)

    assert debate["creator_id"] == "creator"

    fetched = await client.get(f"/api/debates/{debate['id']}")
    assert fetched.json()["title"] == "Tempolimit auf Autobahnen"

    listed = await client.get("/api/debates")
    assert [d["id"] for d in listed.json()] == [debate["id"]]


@pytest.mark.asyncio
async def test_mutation_requires_identity(client):
    response = await client.post("/api/debates", json={"title": "Tempolimit"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_overlong_user_id_rejected(client):
    too_long = await client.post(
        "/api/debates", json={"title": "Tempolimit"}, headers=as_user("u" * 65)
    )
    longest = await client.post(
        "/api/debates", json={"title": "Tempolimit"}, headers=as_user("u" * 64)
    )

    assert too_long.status_code == 401
    assert too_long.json()["detail"] == "Ungültige Benutzerkennung"
    assert longest.status_code == 201


@pytest.mark.asyncio
async def test_debate_sort_orders(client):
    quiet = await create_debate(client, title="Atomkraft")
    busy = await create_debate(client, title="Tempolimit")
    newest = await create_debate(client, title="Grundeinkommen")
    await submit(client, newest["id"], analyze=False)
    await submit(client, busy["id"], analyze=False)
    await submit(client, busy["id"], user_id="other", text=REPLY, type="Contra", analyze=False)

    async def listed(sort):
        response = await client.get("/api/debates", params={"sort": sort})
        assert response.status_code == 200
        return response.json()

    recent = await listed("recent")
    active = await listed("active")
    trending = await listed("trending")

    assert [d["id"] for d in recent] == [newest["id"], busy["id"], quiet["id"]]
    assert [d["id"] for d in active] == [busy["id"], newest["id"], quiet["id"]]
    assert [d["id"] for d in trending] == [busy["id"], newest["id"], quiet["id"]]

    figures = {d["id"]: d for d in trending}
    assert figures[busy["id"]]["argument_count"] == 2
    assert figures[busy["id"]]["participant_count"] == 2
    assert figures[busy["id"]]["activity_score"] == 30
    assert figures[newest["id"]]["activity_score"] == 15
    assert figures[quiet["id"]]["activity_score"] == 0
    assert figures[quiet["id"]]["argument_count"] == 0


@pytest.mark.asyncio
async def test_unknown_debate_sort_rejected(client):
    response = await client.get("/api/debates", params={"sort": "popular"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_invalid_debate_title(client):
    response = await client.post(
        "/api/debates", json={"title": "ab"}, headers=as_user("creator")
    )

    assert response.status_code == 422
    assert response.json()["detail"] == ["Titel muss mindestens 3 Zeichen enthalten"]


@pytest.mark.asyncio
async def test_unknown_debate_404(client):
    response = await client.get(f"/api/debates/{uuid.uuid4()}")

    assert response.status_code == 404


# =============================================================================
# ARGUMENT SUBMISSION
# =============================================================================

@pytest.mark.asyncio
async def test_submit_high_quality_argument_with_source(client):
    debate = await create_debate(client)

    response = await submit(
        client,
        debate["id"],
        source_url="https://www.destatis.de/unfaelle",
        source_description="Unfallstatistik 2023",
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["argument"]["quality_score"] == 100
    assert body["analysis"]["available"] is True
    assert body["analysis"]["quality_tier"] == "high"
    assert body["analysis"]["analysis"]["evidence"]["label"] == "Vorhanden"
    assert body["analysis"]["analysis"]["fallacy"]["label"] == "Keiner"
    assert [t["action_type"] for t in body["reputation_awarded"]] == [
        "high_quality_argument",
        "source_provided",
    ]

    profile = await reputation(client, "author")
    assert profile["reputation_score"] == 30
    assert profile["level"] == "Anfänger"
    assert len(profile["history"]) == 2


@pytest.mark.asyncio
async def test_low_quality_argument_rejected(client, analysis_client, analysis_payload):
    debate = await create_debate(client)
    analysis_client.respond_with(
        analysis_payload(
            relevance=1, evidence="Nicht vorhanden", specificity="Vage", fallacy="Ad-hominem"
        )
    )

    response = await submit(client, debate["id"])

    assert response.status_code == 422
    assert response.json()["detail"][0].startswith("Argumentqualität zu niedrig (8%)")

    arguments = await client.get(f"/api/debates/{debate['id']}/arguments")
    assert arguments.json() == []


@pytest.mark.asyncio
async def test_analysis_outage_still_stores_argument(client, analysis_client):
    debate = await create_debate(client)
    analysis_client.respond_with(RuntimeError("upstream down"))

    response = await submit(client, debate["id"])

    assert response.status_code == 201
    body = response.json()
    assert body["argument"]["quality_score"] is None
    assert body["analysis"] == {
        "available": False,
        "error": "Analyse fehlgeschlagen.",
        "analysis": None,
        "quality_score": None,
        "quality_tier": None,
        "quality_message": None,
    }
    assert body["warnings"] == ["Analyse fehlgeschlagen."]


@pytest.mark.asyncio
async def test_invalid_argument_rejected(client):
    debate = await create_debate(client)

    response = await submit(client, debate["id"], text="<script>alert(1)</script> Argument")

    assert response.status_code == 422
    assert "Text enthält nicht erlaubte Inhalte" in response.json()["detail"]


@pytest.mark.asyncio
async def test_markup_only_argument_rejected(client):
    debate = await create_debate(client)

    response = await submit(client, debate["id"], text="<p></p><p></p><br><br>")

    assert response.status_code == 422
    assert response.json()["detail"] == ["Argument muss mindestens 10 Zeichen enthalten"]


@pytest.mark.asyncio
async def test_entity_encoded_script_rejected(client):
    debate = await create_debate(client)

    response = await submit(
        client, debate["id"], text="&lt;script&gt;alert(document.cookie)&lt;/script&gt; ok ok"
    )

    assert response.status_code == 422
    assert "Text enthält nicht erlaubte Inhalte" in response.json()["detail"]


@pytest.mark.asyncio
async def test_non_finite_relevance_treated_as_unavailable(client, analysis_client, analysis_payload):
    debate = await create_debate(client)
    analysis_client.respond_with(analysis_payload(relevance="Infinity"))

    response = await submit(client, debate["id"])

    assert response.status_code == 201
    body = response.json()
    assert body["analysis"]["available"] is False
    assert body["argument"]["quality_score"] is None


@pytest.mark.asyncio
async def test_display_name_kept_on_profile(client):
    debate = await create_debate(client)

    response = await submit(client, debate["id"], author_display_name="Anna Müller")

    assert response.status_code == 201
    assert response.json()["argument"]["author_display_name"] == "Anna Müller"
    assert (await reputation(client, "author"))["username"] == "Anna Müller"
    leaderboard = (await client.get("/api/leaderboard")).json()
    assert leaderboard[0]["username"] == "Anna Müller"


@pytest.mark.asyncio
async def test_submit_to_unknown_debate(client):
    response = await submit(client, uuid.uuid4())

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_argument_rate_limit(client):
    debate = await create_debate(client)

    statuses = [
        (await submit(client, debate["id"], analyze=False)).status_code for _ in range(4)
    ]

    assert statuses == [201, 201, 201, 429]
    limited = await submit(client, debate["id"], analyze=False)
    assert limited.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_threaded_arguments(client):
    debate = await create_debate(client)
    thesis = (await submit(client, debate["id"], type="Thesis", analyze=False)).json()
    reply = await submit(
        client,
        debate["id"],
        user_id="other",
        text=REPLY,
        type="Contra",
        parent_id=thesis["argument"]["id"],
        analyze=False,
    )
    assert reply.status_code == 201

    threads = (await client.get(f"/api/debates/{debate['id']}/arguments")).json()

    assert len(threads) == 1
    assert threads[0]["id"] == thesis["argument"]["id"]
    assert [r["text"] for r in threads[0]["replies"]] == [REPLY]


@pytest.mark.asyncio
async def test_reply_to_other_debate_rejected(client):
    first = await create_debate(client)
    second = await create_debate(client, title="Atomkraft")
    foreign = (await submit(client, second["id"], analyze=False)).json()

    response = await submit(
        client, first["id"], user_id="other", parent_id=foreign["argument"]["id"], analyze=False
    )

    assert response.status_code == 422


# =============================================================================
# PREVIEW / ANALYZE
# =============================================================================

@pytest.mark.asyncio
async def test_preview_sanitizes_without_storing(client):
    response = await client.post(
        "/api/arguments/preview",
        json={"text": "Ein <b>fettes</b> Argument<script>x()</script>"},
    )

    body = response.json()
    assert body["is_valid"] is False
    assert body["sanitized_value"] == "Ein fettes Argument"
    assert body["errors"] == ["Text enthält nicht erlaubte Inhalte"]


@pytest.mark.asyncio
async def test_analyze_draft(client, analysis_client, analysis_payload):
    analysis_client.respond_with(analysis_payload(relevance=3, specificity="Vage"))

    response = await client.post(
        "/api/arguments/analyze",
        json={"argument_text": ARGUMENT, "debate_context": "Tempolimit"},
        headers=as_user("author"),
    )

    body = response.json()
    assert body["available"] is True
    assert body["quality_score"] == 64
    assert body["quality_tier"] == "acceptable"
    assert body["quality_message"] == "Solide Argumentqualität"
    assert body["analysis"]["specificity"] == {
        "status": "vague",
        "label": "Vage",
        "justification": "Konkrete Zahlen.",
    }


@pytest.mark.asyncio
async def test_analyze_uses_debate_context(client, analysis_client):
    debate = await create_debate(client)

    await client.post(
        "/api/arguments/analyze",
        json={"argument_text": ARGUMENT, "debate_id": debate["id"]},
        headers=as_user("author"),
    )

    prompt = analysis_client.calls[-1]["messages"][1]["content"]
    assert "Tempolimit auf Autobahnen: Sollte Deutschland ein Tempolimit einführen?" in prompt


# =============================================================================
# RATINGS / STEEL-MAN / CONCEDE
# =============================================================================

@pytest.mark.asyncio
async def test_rating_flow(client):
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]
    url = f"/api/arguments/{argument['id']}/ratings"

    own = await client.post(url, json={"rating_type": "insightful"}, headers=as_user("author"))
    assert own.status_code == 409

    first = await client.post(url, json={"rating_type": "insightful"}, headers=as_user("rater"))
    assert first.status_code == 200
    assert first.json()["points_awarded"] == 5

    again = await client.post(url, json={"rating_type": "insightful"}, headers=as_user("rater"))
    assert again.status_code == 409
    assert again.json()["detail"] == "Sie haben dieses Argument bereits so bewertet."

    concede = await client.post(
        url, json={"rating_type": "concede_point"}, headers=as_user("rater")
    )
    assert concede.json()["points_awarded"] == 20

    assert (await reputation(client, "author"))["reputation_score"] == 25
    assert (await reputation(client, "rater"))["reputation_score"] == 0


@pytest.mark.asyncio
async def test_listing_shows_rating_counts_and_own_ratings(client):
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]
    url = f"/api/arguments/{argument['id']}/ratings"
    await client.post(url, json={"rating_type": "insightful"}, headers=as_user("rater"))
    await client.post(url, json={"rating_type": "insightful"}, headers=as_user("other"))
    await client.post(url, json={"rating_type": "concede_point"}, headers=as_user("other"))
    listing = f"/api/debates/{debate['id']}/arguments"

    mine = (await client.get(listing, headers=as_user("other"))).json()[0]
    anonymous = (await client.get(listing)).json()[0]

    assert mine["insightful_count"] == 2
    assert mine["concede_count"] == 1
    assert mine["my_ratings"] == ["concede_point", "insightful"]
    assert anonymous["insightful_count"] == 2
    assert anonymous["my_ratings"] == []


@pytest.mark.asyncio
async def test_rating_unknown_argument(client):
    response = await client.post(
        f"/api/arguments/{uuid.uuid4()}/ratings",
        json={"rating_type": "insightful"},
        headers=as_user("rater"),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_steel_man_awarded_once(client):
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]
    url = f"/api/arguments/{argument['id']}/steelman"
    body = {"reformulation": "Die Gegenseite sagt: Tempo 130 rettet messbar Menschenleben."}

    own = await client.post(url, json=body, headers=as_user("author"))
    assert own.status_code == 409

    first = await client.post(url, json=body, headers=as_user("opponent"))
    assert first.json() == {
        "accepted": True,
        "rationale": "Gibt die Kernaussage fair wieder.",
        "points_awarded": 30,
    }

    second = await client.post(url, json=body, headers=as_user("opponent"))
    assert second.json()["points_awarded"] == 0

    assert (await reputation(client, "opponent"))["reputation_score"] == 30


@pytest.mark.asyncio
async def test_steel_man_rejected_awards_nothing(client, steelman_client):
    steelman_client.respond_with({"accepted": False, "rationale": "Verzerrt das Argument."})
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]

    response = await client.post(
        f"/api/arguments/{argument['id']}/steelman",
        json={"reformulation": "Die wollen doch nur allen den Spaß verderben."},
        headers=as_user("opponent"),
    )

    assert response.json()["accepted"] is False
    assert response.json()["points_awarded"] == 0


@pytest.mark.asyncio
async def test_concede_own_argument(client):
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]
    url = f"/api/arguments/{argument['id']}/concede"
    await submit(
        client, debate["id"], user_id="opponent", text=REPLY, type="Contra",
        parent_id=argument["id"], analyze=False,
    )

    other = await client.post(url, headers=as_user("opponent"))
    assert other.status_code == 403

    first = await client.post(url, headers=as_user("author"))
    assert first.json()["points_awarded"] == 50
    assert first.json()["already_conceded"] is False
    assert first.json()["conceded_at"] is not None

    second = await client.post(url, headers=as_user("author"))
    assert second.json()["points_awarded"] == 0
    assert second.json()["already_conceded"] is True


@pytest.mark.asyncio
async def test_concede_requires_reply_from_another_user(client):
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]
    url = f"/api/arguments/{argument['id']}/concede"
    await submit(
        client, debate["id"], text=REPLY, type="Contra",
        parent_id=argument["id"], analyze=False,
    )

    response = await client.post(url, headers=as_user("author"))

    assert response.status_code == 409
    assert response.json()["detail"] == (
        "Ein Argument kann erst nach einer Erwiderung zurückgezogen werden."
    )
    assert (await reputation(client, "author"))["reputation_score"] == 0

    threads = (await client.get(f"/api/debates/{debate['id']}/arguments")).json()
    assert threads[0]["conceded_at"] is None


# =============================================================================
# REPUTATION READS
# =============================================================================

@pytest.mark.asyncio
async def test_leaderboard(client):
    debate = await create_debate(client)
    argument = (await submit(client, debate["id"], analyze=False)).json()["argument"]
    await submit(
        client, debate["id"], user_id="rater", text=REPLY, type="Contra",
        parent_id=argument["id"], analyze=False,
    )
    await client.post(f"/api/arguments/{argument['id']}/concede", headers=as_user("author"))
    await client.post(
        f"/api/arguments/{argument['id']}/ratings",
        json={"rating_type": "insightful"},
        headers=as_user("rater"),
    )

    leaderboard = (await client.get("/api/leaderboard")).json()

    assert leaderboard == [
        {
            "rank": 1,
            "user_id": "author",
            "username": None,
            "reputation_score": 55,
            "level": "Neuling",
        }
    ]


@pytest.mark.asyncio
async def test_rule_table_endpoint(client):
    rules = (await client.get("/api/reputation/rules")).json()

    points = {rule["action"]: rule["points"] for rule in rules}
    assert points["steel_manning"] == 30
    assert points["fallacy_penalty"] == -5
    assert len(rules) == 7
