from fastapi.testclient import TestClient


def _create(client: TestClient, headers: dict[str, str], **fields) -> dict:
    body = {"title": "Run 5k", "category": "workout"}
    body.update(fields)
    response = client.post("/tasks", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()["task"]


def test_tasks_require_authentication(client: TestClient) -> None:
    response = client.get("/tasks")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_run_5k_lifecycle(client: TestClient, auth_headers: dict[str, str]) -> None:
    created = client.post(
        "/tasks",
        json={
            "title": "Run 5k",
            "category": "workout",
            "priority": "high",
            "metrics": {"distance": 5, "duration": 28},
            "recurring": {"enabled": True, "frequency": "weekly", "daysOfWeek": [6, 2]},
        },
        headers=auth_headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["message"] == "Task created successfully"
    task = body["task"]
    assert task["completed"] is False
    assert task["completedAt"] is None
    assert task["recurring"]["daysOfWeek"] == [2, 6]
    assert task["metrics"]["distance"] == 5

    toggled = client.patch(f"/tasks/{task['id']}/toggle", headers=auth_headers)
    assert toggled.status_code == 200
    assert toggled.json()["message"] == "Task marked as completed"
    assert toggled.json()["task"]["completedAt"] is not None

    summary = client.get("/tasks/stats/summary", headers=auth_headers).json()
    assert summary["totalTasks"] == 1
    assert summary["completedTasks"] == 1
    assert summary["pendingTasks"] == 0
    assert summary["todayTasks"] == 1
    assert summary["todayCompletedTasks"] == 1
    assert summary["completionRate"] == 100
    assert summary["tasksByCategory"] == {"workout": 1}

    reverted = client.patch(f"/tasks/{task['id']}/toggle", headers=auth_headers)
    assert reverted.json()["message"] == "Task marked as pending"
    assert reverted.json()["task"]["completedAt"] is None


def test_create_task_validation(client: TestClient, auth_headers: dict[str, str]) -> None:
    missing = client.post("/tasks", json={"category": "meal"}, headers=auth_headers)
    assert missing.status_code == 400
    assert missing.json()["message"] == "Task title is required"

    bad_category = client.post("/tasks", json={"title": "Nap", "category": "napping"}, headers=auth_headers)
    assert bad_category.status_code == 400
    assert bad_category.json()["errors"][0]["field"] == "category"


def test_create_task_rejects_infinite_metric(client: TestClient, register_and_login) -> None:
    headers = register_and_login()
    response = client.post(
        "/tasks",
        content='{"title": "Run", "category": "workout", "metrics": {"distance": 1e999}}',
        headers={**headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "metrics.distance"
    assert client.get("/tasks", headers=headers).json()["total"] == 0


def test_list_filters_and_pagination(client: TestClient, auth_headers: dict[str, str]) -> None:
    _create(client, auth_headers, title="Breakfast", category="meal")
    _create(client, auth_headers, title="Water", category="hydration")
    _create(client, auth_headers, title="Dinner", category="meal")

    meals = client.get("/tasks", params={"category": "meal"}, headers=auth_headers).json()
    assert meals["total"] == 2
    assert [task["title"] for task in meals["tasks"]] == ["Dinner", "Breakfast"]

    everything = client.get("/tasks", params={"category": "all", "limit": 2}, headers=auth_headers).json()
    assert everything["total"] == 3
    assert everything["pages"] == 2
    assert len(everything["tasks"]) == 2

    pending = client.get("/tasks", params={"completed": "false"}, headers=auth_headers).json()
    assert pending["total"] == 3

    bad = client.get("/tasks", params={"category": "yoga"}, headers=auth_headers)
    assert bad.status_code == 400
    assert bad.json()["message"].startswith("Unknown category: yoga. Expected one of: all, workout")


def test_update_and_delete(client: TestClient, auth_headers: dict[str, str]) -> None:
    task = _create(client, auth_headers, description="Easy pace")

    updated = client.put(f"/tasks/{task['id']}", json={"title": "Run 10k"}, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.json()["message"] == "Task updated successfully"
    assert updated.json()["task"]["title"] == "Run 10k"
    assert updated.json()["task"]["description"] == "Easy pace"

    null_title = client.put(f"/tasks/{task['id']}", json={"title": None}, headers=auth_headers)
    assert null_title.status_code == 400

    deleted = client.delete(f"/tasks/{task['id']}", headers=auth_headers)
    assert deleted.json() == {"message": "Task deleted successfully"}
    assert client.get(f"/tasks/{task['id']}", headers=auth_headers).status_code == 404


def test_other_users_tasks_are_hidden(client: TestClient, register_and_login) -> None:
    owner = register_and_login()
    stranger = register_and_login()
    task = _create(client, owner)

    for response in (
        client.get(f"/tasks/{task['id']}", headers=stranger),
        client.put(f"/tasks/{task['id']}", json={"title": "Mine"}, headers=stranger),
        client.patch(f"/tasks/{task['id']}/toggle", headers=stranger),
        client.delete(f"/tasks/{task['id']}", headers=stranger),
    ):
        assert response.status_code == 404
        assert response.json() == {"message": "Task not found"}

    assert client.get("/tasks", headers=stranger).json()["total"] == 0
    assert client.get(f"/tasks/{task['id']}", headers=owner).status_code == 200
