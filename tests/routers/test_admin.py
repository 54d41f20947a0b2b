def _enum_id(client, field: str) -> int:
    r = client.get("/v3/loader_field", params={"loader_field": field, "include_hidden": "true"})
    return r.json()[0]["enum_id"]


class TestGamesAndLoaders:
    def test_create_game(self, client):
        r = client.post("/v3/admin/game", json={"name": "hytale"})
        assert r.status_code == 201
        assert r.json()["name"] == "hytale"

    def test_duplicate_game(self, client):
        r = client.post("/v3/admin/game", json={"name": "minecraft-java"})
        assert r.status_code == 409
        assert r.json()["error"] == "conflict"

    def test_create_and_delete_loader(self, client):
        r = client.post(
            "/v3/admin/loader",
            json={"name": "rift", "games": ["minecraft-java"], "project_types": ["mod"]},
        )
        assert r.status_code == 201
        assert r.json()["supported_games"] == ["minecraft-java"]

        assert client.delete("/v3/admin/loader/rift").status_code == 204
        names = [item["name"] for item in client.get("/v3/tag/loader").json()]
        assert "rift" not in names

    def test_loader_for_unknown_game(self, client):
        r = client.post("/v3/admin/loader", json={"name": "rift", "games": ["nope"]})
        assert r.status_code == 404

    def test_delete_loader_in_use(self, client):
        r = client.delete("/v3/admin/loader/fabric")
        assert r.status_code == 409


class TestLoaderFields:
    def test_create_field(self, client):
        r = client.post(
            "/v3/admin/loader_field",
            json={
                "field": "singleplayer",
                "field_type": "boolean",
                "loaders": ["fabric", "quilt"],
            },
        )
        assert r.status_code == 201
        body = r.json()
        assert body["field_type"] == "boolean"
        assert body["loaders"] == ["fabric", "quilt"]

    def test_invalid_field_type(self, client):
        r = client.post(
            "/v3/admin/loader_field", json={"field": "x", "field_type": "array(int)"}
        )
        assert r.status_code == 422

    def test_enum_field_without_enum(self, client):
        r = client.post("/v3/admin/loader_field", json={"field": "x", "field_type": "enum"})
        assert r.status_code == 400
        assert r.json()["fields"][0]["field"] == "enum_type"

    def test_associate_and_dissociate(self, client):
        r = client.post("/v3/admin/loader_field/client_side/loaders", json={"loaders": ["datapack"]})
        assert r.status_code == 200
        assert "datapack" in r.json()["loaders"]

        r = client.delete("/v3/admin/loader_field/client_side/loaders/datapack")
        assert r.status_code == 200
        assert "datapack" not in r.json()["loaders"]


class TestEnums:
    def test_create_enum_and_values(self, client):
        r = client.post("/v3/admin/enum", json={"game": "minecraft-java", "enum_name": "colors"})
        assert r.status_code == 201
        enum_id = r.json()["id"]

        r = client.post(f"/v3/admin/enum/{enum_id}/value", json={"value": "red", "ordering": 1})
        assert r.status_code == 201
        assert r.json()["value"] == "red"

        r = client.post(f"/v3/admin/enum/{enum_id}/value", json={"value": "red"})
        assert r.status_code == 409

    def test_patch_value_deprecates(self, client):
        enum_id = _enum_id(client, "game_versions")
        r = client.post(
            f"/v3/admin/enum/{enum_id}/value",
            json={"value": "1.21", "metadata": {"type": "release", "major": True}},
        )
        value_id = r.json()["id"]

        r = client.patch(f"/v3/admin/enum_value/{value_id}", json={"deprecated": True})
        assert r.status_code == 200
        assert r.json()["deprecated"] is True
        assert r.json()["metadata"] == {"type": "release", "major": True}

        listed = client.get("/v3/loader_field", params={"loader_field": "game_versions"}).json()
        assert "1.21" not in [v["value"] for v in listed]

    def test_delete_value(self, client):
        enum_id = _enum_id(client, "game_versions")
        value_id = client.post(f"/v3/admin/enum/{enum_id}/value", json={"value": "1.21"}).json()["id"]
        assert client.delete(f"/v3/admin/enum_value/{value_id}").status_code == 204
        assert client.delete(f"/v3/admin/enum_value/{value_id}").status_code == 404
