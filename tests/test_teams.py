from conftest import PASSWORD


def _create_team(client, ctx, student_ids, headers=None):
    return client.post(
        "/api/teams/create",
        json={"projectId": ctx.project["id"], "studentIds": student_ids},
        headers=headers or ctx.instructor.headers,
    )


def test_teams_are_named_in_sequence(client, make_project):
    ctx = make_project(student_count=3)
    first, second, third = ctx.students

    res = _create_team(client, ctx, [first.id, second.id, first.id])
    assert res.status_code == 200
    team = res.json()["team"]
    assert team["name"] == "Team 1"
    assert team["projectId"] == ctx.project["id"]
    assert [m["studentId"] for m in team["members"]] == sorted([first.id, second.id])
    assert team["members"][0]["student"]["email"] == "s1@example.com"

    res = _create_team(client, ctx, [third.id])
    assert res.json()["team"]["name"] == "Team 2"


def test_student_cannot_join_two_teams(client, make_project):
    ctx = make_project(student_count=2)
    first, second = ctx.students
    assert _create_team(client, ctx, [first.id]).status_code == 200

    res = _create_team(client, ctx, [second.id, first.id])
    assert res.status_code == 400
    assert res.json() == {"error": f"Student {first.id} is already on a team"}


def test_team_requires_accepted_invites(client, make_project, make_user):
    ctx = make_project(student_count=1)
    stranger = make_user("stranger@example.com")

    res = _create_team(client, ctx, [ctx.students[0].id, stranger.id])
    assert res.status_code == 400
    assert str(stranger.id) in res.json()["error"]


def test_team_creation_errors(client, make_project, make_user):
    ctx = make_project(student_count=1)

    res = _create_team(client, ctx, [])
    assert res.status_code == 400

    res = _create_team(client, ctx, [ctx.students[0].id], headers=ctx.students[0].headers)
    assert res.status_code == 403
    assert res.json() == {"error": "Instructor access required"}

    other = make_user("other@example.com", role="instructor", password=PASSWORD)
    res = _create_team(client, ctx, [ctx.students[0].id], headers=other.headers)
    assert res.status_code == 403
    assert res.json() == {"error": "Unauthorized"}

    res = client.post(
        "/api/teams/create",
        json={"projectId": 999, "studentIds": [ctx.students[0].id]},
        headers=ctx.instructor.headers,
    )
    assert res.status_code == 404
    assert res.json() == {"error": "Project not found"}
