CREATOR = {"X-User-Id": "creator1", "X-Username": "alice"}
GUESSER = {"X-User-Id": "u2", "X-Username": "bob"}
MODERATOR = {"X-User-Id": "mod1", "X-Moderator": "true"}

GAME_PAYLOAD = {
    "gameId": "game1",
    "mapKey": "octmap",
    "hidingSpot": {"objectKey": "pumpkin", "relX": 0.5, "relY": 0.3},
    "postId": "t3_abc",
}


def _create_game(client):
    response = client.post("/api/games", json=GAME_PAYLOAD, headers=CREATOR)
    assert response.status_code == 201
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["storage"]["storage"] is True


def test_create_game(client):
    body = _create_game(client)
    assert body["gameId"] == "game1"
    assert body["creator"] == "creator1"
    assert body["creatorUsername"] == "alice"
    assert body["hidingSpot"] == {"objectKey": "pumpkin", "relX": 0.5, "relY": 0.3}
    assert body["isActive"] is True


def test_duplicate_game_is_rejected(client):
    _create_game(client)
    response = client.post("/api/games", json=GAME_PAYLOAD, headers=CREATOR)
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["details"]["field"] == "gameId"


def test_missing_user_header(client):
    response = client.post("/api/games", json=GAME_PAYLOAD)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "X-User-Id"


def test_out_of_range_hiding_spot(client):
    payload = dict(GAME_PAYLOAD, hidingSpot={"objectKey": "pumpkin", "relX": 1.0001, "relY": 0.3})
    response = client.post("/api/games", json=payload, headers=CREATOR)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "relX"


def test_public_game_hides_the_spot(client):
    _create_game(client)
    for path in ("/api/games/game1", "/api/games/by-post/t3_abc"):
        response = client.get(path)
        assert response.status_code == 200
        body = response.json()
        assert body["gameId"] == "game1"
        assert "hidingSpot" not in body


def test_unknown_game(client):
    response = client.get("/api/games/nope")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_submit_guess(client):
    _create_game(client)
    response = client.post(
        "/api/games/game1/guesses",
        json={"objectKey": "pumpkin", "relX": 0.5, "relY": 0.3},
        headers=GUESSER,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["guess"]["isCorrect"] is True
    assert body["guess"]["username"] == "bob"
    assert body["rankChanged"] is False
    assert body["rankChange"] is None


def test_guessing_too_fast(client):
    _create_game(client)
    guess = {"objectKey": "pumpkin", "relX": 0.9, "relY": 0.9}
    assert client.post("/api/games/game1/guesses", json=guess, headers=GUESSER).status_code == 201

    response = client.post("/api/games/game1/guesses", json=guess, headers=GUESSER)
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "2"


def test_guess_list_is_creator_only(client):
    _create_game(client)
    client.post("/api/games/game1/guesses", json={"objectKey": "bush", "relX": 0.2, "relY": 0.8}, headers=GUESSER)

    assert client.get("/api/games/game1/guesses", headers=GUESSER).status_code == 403

    response = client.get("/api/games/game1/guesses", headers=CREATOR)
    assert response.status_code == 200
    assert [g["objectKey"] for g in response.json()["guesses"]] == ["bush"]

    assert client.get("/api/games/game1/guesses", headers=MODERATOR).status_code == 200


def test_statistics_and_leaderboard(client):
    _create_game(client)
    client.post("/api/games/game1/guesses", json={"objectKey": "pumpkin", "relX": 0.5, "relY": 0.3}, headers=GUESSER)

    stats = client.get("/api/games/game1/statistics").json()
    assert stats == {"totalGuesses": 1, "correctGuesses": 1, "uniqueGuessers": 1, "averageDistance": 0.0}

    leaderboard = client.get("/api/games/game1/leaderboard").json()
    assert [g["userId"] for g in leaderboard] == ["u2"]


def test_attach_post_requires_creator(client):
    _create_game(client)
    payload = {"postId": "t3_new"}
    assert client.post("/api/games/game1/post", json=payload, headers=GUESSER).status_code == 403

    response = client.post("/api/games/game1/post", json=payload, headers=CREATOR)
    assert response.status_code == 200
    assert response.json()["postId"] == "t3_new"


def test_delete_game(client):
    _create_game(client)
    assert client.delete("/api/games/game1", headers=GUESSER).status_code == 403
    assert client.delete("/api/games/game1", headers=CREATOR).status_code == 204
    assert client.get("/api/games/game1").status_code == 404


def test_players_me_creates_profile(client):
    response = client.get("/api/players/me", headers=GUESSER)
    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["userId"] == "u2"
    assert body["profile"]["rank"] == "Tyapu"
    assert body["progression"]["nextRank"] == "GuessMaster"

    assert client.get("/api/players/u2").status_code == 200
    assert client.get("/api/players/nobody").status_code == 404


def test_player_leaderboard(client):
    _create_game(client)
    body = client.get("/api/players/leaderboard").json()
    assert [p["userId"] for p in body["players"]] == ["creator1"]
    assert body["rankDistribution"]["Tyapu"] == 1


def test_maintenance_requires_moderator(client):
    assert client.get("/api/maintenance/status", headers=GUESSER).status_code == 403


def test_forced_cleanup_endpoint(client):
    response = client.post("/api/maintenance/cleanup", headers=MODERATOR)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["forced"] is True

    history = client.get("/api/maintenance/history", headers=MODERATOR).json()
    assert len(history) == 1

    statistics = client.get("/api/maintenance/statistics", headers=MODERATOR).json()
    assert statistics["totalRuns"] == 1

    status = client.get("/api/maintenance/status", headers=MODERATOR).json()
    assert status["isRunning"] is False
    assert status["lastOutcome"] == "SUCCEEDED"

    health = client.get("/api/maintenance/health", headers=MODERATOR).json()
    assert health["status"] in ("healthy", "warning")
