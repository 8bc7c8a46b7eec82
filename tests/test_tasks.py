import logging

import pytest

from taskboard.utils.object_id import generate_object_id


@pytest.fixture
def project(user, create_project):
    return create_project(user["headers"], name="Board")


def test_create_task_defaults(client, user, project, create_task):
    task = create_task(user["headers"], project["id"], title="  Write docs  ")

    assert task["title"] == "Write docs"
    assert task["status"] == "todo"
    assert task["priority"] == "medium"
    assert task["projectId"] == project["id"]
    assert task["createdBy"] == user["id"]
    assert task["subtasks"] == []
    assert task["labels"] == []
    assert task["assigneeId"] is None
    assert task["dueDate"] is None
    assert task["completionPercentage"] == 0


def test_create_task_accepts_empty_assignee_and_due_date(client, user, project, create_task):
    task = create_task(
        user["headers"],
        project["id"],
        assigneeId="",
        dueDate="",
        estimatedHours=3.5,
        labels=["docs", "backend"],
    )

    assert task["assigneeId"] is None
    assert task["dueDate"] is None
    assert task["estimatedHours"] == 3.5
    assert task["labels"] == ["docs", "backend"]


def test_create_task_in_foreign_or_missing_project(client, user, other_user, project):
    foreign = client.post(
        "/api/tasks",
        json={"projectId": project["id"], "title": "sneaky"},
        headers=other_user["headers"],
    )
    missing = client.post(
        "/api/tasks",
        json={"projectId": generate_object_id(), "title": "orphan"},
        headers=user["headers"],
    )

    for response in (foreign, missing):
        assert response.status_code == 404
        assert response.json() == {"message": "Project not found or access denied"}


DROP = object()


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"projectId": DROP, "title": "t"}, "projectId is required"),
        ({"projectId": "nope", "title": "t"}, "Invalid project ID"),
        ({"title": ""}, "Task title is required"),
        ({"title": "x" * 201}, "Task title must be less than 200 characters"),
        ({"title": "t", "estimatedHours": 1001}, None),
        ({"title": "t", "labels": ["x" * 21]}, "Labels must be less than 20 characters"),
        ({"title": "t", "dueDate": "not-a-date"}, "Invalid due date"),
        ({"title": "t", "assigneeId": "bob"}, "Invalid assignee ID"),
        ({"title": "t", "status": "blocked"}, None),
    ],
)
def test_create_task_validation(client, user, project, payload, message):
    body = {"projectId": project["id"], **payload}
    body = {key: value for key, value in body.items() if value is not DROP}

    response = client.post("/api/tasks", json=body, headers=user["headers"])

    assert response.status_code == 400
    if message is not None:
        assert response.json() == {"message": message}
    assert client.get("/api/tasks", headers=user["headers"]).json()["pagination"]["total"] == 0


def test_validation_runs_before_ownership(client, other_user, project, user, create_task):
    task = create_task(user["headers"], project["id"])

    response = client.put(
        f"/api/tasks/{task['id']}/status",
        json={"status": "blocked"},
        headers=other_user["headers"],
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Status must be one of: todo, in-progress, done"}


def test_task_access_is_scoped_to_project_owner(client, user, other_user, project, create_task, caplog):
    task = create_task(user["headers"], project["id"])
    url = f"/api/tasks/{task['id']}"
    headers = other_user["headers"]

    with caplog.at_level(logging.WARNING, logger="security"):
        responses = [
            client.get(url, headers=headers),
            client.put(url, json={"title": "mine now"}, headers=headers),
            client.put(f"{url}/status", json={"status": "done"}, headers=headers),
            client.post(f"{url}/subtasks", json={"title": "sub"}, headers=headers),
            client.delete(url, headers=headers),
        ]

    for response in responses:
        assert response.status_code == 404
        assert response.json() == {"message": "Task not found"}
    assert f"task/{task['id']}" in caplog.text

    assert client.get("/api/tasks", headers=headers).json()["tasks"] == []
    assert client.get(url, headers=user["headers"]).json()["title"] == task["title"]


def test_subtasks_of_foreign_task_cannot_be_changed(client, user, other_user, project, create_task, caplog):
    task = create_task(user["headers"], project["id"])
    subtask = client.post(
        f"/api/tasks/{task['id']}/subtasks", json={"title": "keep me"}, headers=user["headers"]
    ).json()
    url = f"/api/tasks/{task['id']}/subtasks/{subtask['id']}"

    with caplog.at_level(logging.WARNING, logger="security"):
        updated = client.put(
            url, json={"title": "hijacked", "completed": True}, headers=other_user["headers"]
        )
        deleted = client.delete(url, headers=other_user["headers"])

    for response in (updated, deleted):
        assert response.status_code == 404
        assert response.json() == {"message": "Task not found"}
    assert caplog.text.count(f"task/{task['id']}") == 2

    stored = client.get(f"/api/tasks/{task['id']}", headers=user["headers"]).json()
    assert [(s["id"], s["title"], s["completed"]) for s in stored["subtasks"]] == [
        (subtask["id"], "keep me", False)
    ]


def test_get_task_unknown_and_malformed_ids(client, user):
    missing = client.get(f"/api/tasks/{generate_object_id()}", headers=user["headers"])
    assert missing.status_code == 404
    assert missing.json() == {"message": "Task not found"}

    malformed = client.get("/api/tasks/123", headers=user["headers"])
    assert malformed.status_code == 400
    assert malformed.json() == {"message": "Invalid task ID"}


def test_update_task_fields(client, user, project, create_task):
    task = create_task(user["headers"], project["id"])
    assignee = generate_object_id()

    response = client.put(
        f"/api/tasks/{task['id']}",
        json={
            "title": "Renamed",
            "priority": "high",
            "assigneeId": assignee,
            "dueDate": "2030-01-15",
            "actualHours": 2,
        },
        headers=user["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Renamed"
    assert body["priority"] == "high"
    assert body["assigneeId"] == assignee
    assert body["dueDate"].startswith("2030-01-15")
    assert body["actualHours"] == 2
    assert body["description"] == task["description"]
    assert body["updatedAt"] >= task["updatedAt"]


def test_project_id_is_immutable(client, user, project, create_project, create_task):
    task = create_task(user["headers"], project["id"])
    elsewhere = create_project(user["headers"], name="Elsewhere")

    response = client.put(
        f"/api/tasks/{task['id']}",
        json={"projectId": elsewhere["id"], "title": "moved?"},
        headers=user["headers"],
    )

    assert response.status_code == 400
    assert response.json() == {"message": "projectId is not allowed"}
    stored = client.get(f"/api/tasks/{task['id']}", headers=user["headers"]).json()
    assert stored["projectId"] == project["id"]
    assert stored["title"] == task["title"]


def test_update_task_requires_a_field(client, user, project, create_task):
    task = create_task(user["headers"], project["id"])

    response = client.put(f"/api/tasks/{task['id']}", json={}, headers=user["headers"])

    assert response.status_code == 400
    assert response.json() == {"message": "At least one field must be provided for update"}


@pytest.mark.parametrize("status", ["todo", "in-progress", "done"])
def test_status_update_accepts_every_status(client, user, project, create_task, status):
    task = create_task(user["headers"], project["id"])

    response = client.put(
        f"/api/tasks/{task['id']}/status", json={"status": status}, headers=user["headers"]
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == task["id"]
    assert body["status"] == status
    assert "updatedAt" in body


@pytest.mark.parametrize("payload", [{"status": "archived"}, {}, {"status": 3}])
def test_status_update_rejects_other_values(client, user, project, create_task, payload):
    task = create_task(user["headers"], project["id"])

    response = client.put(
        f"/api/tasks/{task['id']}/status", json=payload, headers=user["headers"]
    )

    assert response.status_code == 400


def test_delete_task(client, user, project, create_task):
    task = create_task(user["headers"], project["id"])

    response = client.delete(f"/api/tasks/{task['id']}", headers=user["headers"])
    assert response.status_code == 200
    assert response.json() == {"message": "Task deleted successfully"}

    assert client.get(f"/api/tasks/{task['id']}", headers=user["headers"]).status_code == 404


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def test_list_filters(client, user, project, create_task):
    assignee = generate_object_id()
    create_task(user["headers"], project["id"], title="a", status="done", priority="high")
    create_task(user["headers"], project["id"], title="b", assigneeId=assignee)
    create_task(user["headers"], project["id"], title="c", priority="high")

    url = f"/api/projects/{project['id']}/tasks"

    def titles(**params):
        response = client.get(url, params=params, headers=user["headers"])
        assert response.status_code == 200, response.text
        return sorted(t["title"] for t in response.json()["tasks"])

    assert titles() == ["a", "b", "c"]
    assert titles(status="done") == ["a"]
    assert titles(status="all") == ["a", "b", "c"]
    assert titles(priority="high") == ["a", "c"]
    assert titles(priority="high", status="todo") == ["c"]
    assert titles(assignee=assignee) == ["b"]
    assert titles(assignee="all") == ["a", "b", "c"]


@pytest.mark.parametrize(
    "params", [{"status": "blocked"}, {"priority": "urgent"}, {"assignee": "bob"}, {"page": "x"}]
)
def test_list_rejects_bad_query_values(client, user, project, params):
    response = client.get(
        f"/api/projects/{project['id']}/tasks", params=params, headers=user["headers"]
    )

    assert response.status_code == 400


def test_list_is_newest_first_and_paginated(client, user, project, create_task):
    created = [create_task(user["headers"], project["id"], title=f"t{i}") for i in range(5)]

    response = client.get(
        f"/api/projects/{project['id']}/tasks",
        params={"page": 2, "limit": 2},
        headers=user["headers"],
    )

    body = response.json()
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}
    assert [t["id"] for t in body["tasks"]] == [created[2]["id"], created[1]["id"]]


@pytest.mark.parametrize(
    "params, expected_page, expected_limit",
    [
        ({"page": 0, "limit": 0}, 1, 1),
        ({"page": -3, "limit": -10}, 1, 1),
        ({"limit": 1000}, 1, 100),
        ({}, 1, 20),
        ({"page": 10**20, "limit": 5}, 10_000, 5),
    ],
)
def test_pagination_is_clamped(client, user, project, params, expected_page, expected_limit):
    response = client.get(
        f"/api/projects/{project['id']}/tasks", params=params, headers=user["headers"]
    )

    assert response.status_code == 200
    pagination = response.json()["pagination"]
    assert pagination["page"] == expected_page
    assert pagination["limit"] == expected_limit


def test_huge_page_on_global_list_is_an_empty_page(client, user, project, create_task):
    create_task(user["headers"], project["id"])

    response = client.get("/api/tasks", params={"page": 10**20}, headers=user["headers"])

    assert response.status_code == 200
    body = response.json()
    assert body["tasks"] == []
    assert body["pagination"]["page"] == 10_000
    assert body["pagination"]["total"] == 1


def test_global_list_defaults_and_spans_owned_projects(client, user, other_user, create_project, create_task):
    first = create_project(user["headers"], name="First")
    second = create_project(user["headers"], name="Second")
    foreign = create_project(other_user["headers"], name="Foreign")
    create_task(user["headers"], first["id"], title="one")
    create_task(user["headers"], second["id"], title="two")
    create_task(other_user["headers"], foreign["id"], title="not mine")

    response = client.get("/api/tasks", headers=user["headers"])

    body = response.json()
    assert body["pagination"]["limit"] == 50
    assert sorted(t["title"] for t in body["tasks"]) == ["one", "two"]


def test_project_task_alias_route(client, user, other_user, project, create_task):
    task = create_task(user["headers"], project["id"])

    own = client.get(f"/api/tasks/projects/{project['id']}/tasks", headers=user["headers"])
    foreign = client.get(
        f"/api/tasks/projects/{project['id']}/tasks", headers=other_user["headers"]
    )

    assert [t["id"] for t in own.json()["tasks"]] == [task["id"]]
    assert foreign.status_code == 404


def test_search_is_case_insensitive_over_title_and_description(client, user, project, create_task):
    create_task(user["headers"], project["id"], title="Fix LOGIN bug")
    create_task(user["headers"], project["id"], title="Other", description="login page styling")
    create_task(user["headers"], project["id"], title="Unrelated")

    response = client.get(
        "/api/tasks", params={"search": "  login  "}, headers=user["headers"]
    )

    assert sorted(t["title"] for t in response.json()["tasks"]) == ["Fix LOGIN bug", "Other"]


@pytest.mark.parametrize("term", ["a+++", "(.*)", "[", "100%", "snake_case", "back\\slash"])
def test_search_matches_metacharacters_literally(client, user, project, create_task, term):
    match = create_task(user["headers"], project["id"], title=f"contains {term} here")
    create_task(user["headers"], project["id"], title="aaaa 1000 snakeXcase backslash")

    response = client.get("/api/tasks", params={"search": term}, headers=user["headers"])

    assert response.status_code == 200
    assert [t["id"] for t in response.json()["tasks"]] == [match["id"]]


def test_blank_search_is_ignored(client, user, project, create_task):
    create_task(user["headers"], project["id"], title="one")

    response = client.get("/api/tasks", params={"search": "   "}, headers=user["headers"])

    assert response.json()["pagination"]["total"] == 1


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------


def test_subtask_lifecycle(client, user, project, create_task):
    task = create_task(user["headers"], project["id"])
    url = f"/api/tasks/{task['id']}/subtasks"

    first = client.post(url, json={"title": "step one"}, headers=user["headers"])
    second = client.post(
        url, json={"title": "step two", "completed": True}, headers=user["headers"]
    )
    assert first.status_code == second.status_code == 201
    first, second = first.json(), second.json()
    assert first["completed"] is False
    assert first["createdBy"] == user["id"]
    assert second["completed"] is True

    stored = client.get(f"/api/tasks/{task['id']}", headers=user["headers"]).json()
    assert [s["id"] for s in stored["subtasks"]] == [first["id"], second["id"]]
    assert stored["completionPercentage"] == 50

    updated = client.put(
        f"{url}/{first['id']}", json={"completed": True}, headers=user["headers"]
    )
    assert updated.status_code == 200
    assert updated.json()["completed"] is True
    assert updated.json()["title"] == "step one"
    stored = client.get(f"/api/tasks/{task['id']}", headers=user["headers"]).json()
    assert stored["completionPercentage"] == 100

    deleted = client.delete(f"{url}/{second['id']}", headers=user["headers"])
    assert deleted.status_code == 200
    stored = client.get(f"/api/tasks/{task['id']}", headers=user["headers"]).json()
    assert [s["id"] for s in stored["subtasks"]] == [first["id"]]


def test_missing_subtask(client, user, project, create_task):
    task = create_task(user["headers"], project["id"])
    url = f"/api/tasks/{task['id']}/subtasks/{generate_object_id()}"

    updated = client.put(url, json={"completed": True}, headers=user["headers"])
    deleted = client.delete(url, headers=user["headers"])

    for response in (updated, deleted):
        assert response.status_code == 404
        assert response.json() == {"message": "Subtask not found"}


def test_subtask_validation(client, user, project, create_task):
    task = create_task(user["headers"], project["id"])
    url = f"/api/tasks/{task['id']}/subtasks"

    assert client.post(url, json={}, headers=user["headers"]).status_code == 400
    too_long = client.post(
        url, json={"title": "x", "description": "d" * 501}, headers=user["headers"]
    )
    assert too_long.status_code == 400
    subtask = client.post(url, json={"title": "ok"}, headers=user["headers"]).json()
    empty_update = client.put(f"{url}/{subtask['id']}", json={}, headers=user["headers"])
    assert empty_update.status_code == 400


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


def test_end_to_end_status_change_updates_project_counts(client):
    registered = client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "a@example.com", "password": "Passw0rd!"},
    )
    assert registered.status_code == 201

    login = client.post(
        "/api/auth/login", json={"email": "a@example.com", "password": "Passw0rd!"}
    )
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    project = client.post("/api/projects", json={"name": "P1 board"}, headers=headers).json()

    task = client.post(
        "/api/tasks", json={"projectId": project["id"], "title": "T1"}, headers=headers
    ).json()
    assert task["status"] == "todo"

    done = client.put(
        f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=headers
    )
    assert done.json()["status"] == "done"

    fetched = client.get(f"/api/projects/{project['id']}", headers=headers).json()
    assert fetched["taskCounts"]["done"] == 1
    assert fetched["taskCounts"]["todo"] == 0
    assert fetched["totalTasks"] == 1


def test_end_to_end_other_user_cannot_list_project_tasks(client, register, auth_headers):
    alice = register(name="alice", email="alice@example.com")
    project = client.post(
        "/api/projects", json={"name": "P1 board"}, headers=auth_headers(alice["token"])
    ).json()

    bob = register(name="bobby", email="bob@example.com")
    response = client.get(
        f"/api/projects/{project['id']}/tasks", headers=auth_headers(bob["token"])
    )

    assert response.status_code == 404
