import random
from types import SimpleNamespace

from peereval.services.feedback import anonymize_feedback, average_rating, group_by_criterion
from peereval.utils.helpers import round_half_up


def _feedback(client, ctx, student, headers=None):
    return client.get(
        f"/api/surveys/{ctx.assignment['id']}/my-feedback",
        params={"targetStudentId": student.id},
        headers=headers or student.headers,
    )


def test_my_feedback_is_anonymized(client, make_survey, submit):
    ctx = make_survey(student_count=3)
    first, second, third = ctx.students
    submit(ctx, first, {third.id: 5}, text="Always prepared")
    submit(ctx, second, {third.id: 4}, text="Helpful in reviews")

    res = _feedback(client, ctx, third)
    assert res.status_code == 200
    body = res.json()
    assert body["totalResponses"] == 2
    assert [c["label"] for c in body["criteria"]] == ["Teamwork", "Communication"]

    teamwork = body["feedbackByCriterion"][str(ctx.criteria[0]["id"])]
    assert sorted(item["anonymousId"] for item in teamwork) == ["Peer 1", "Peer 2"]
    assert sorted(item["text"] for item in teamwork) == ["Always prepared", "Helpful in reviews"]
    assert sorted(item["rating"] for item in teamwork) == [4, 5]
    for items in body["feedbackByCriterion"].values():
        for item in items:
            assert set(item) == {"anonymousId", "text", "rating"}


def test_my_feedback_has_a_bucket_per_criterion(client, make_survey):
    ctx = make_survey(student_count=2)
    body = _feedback(client, ctx, ctx.students[0]).json()
    assert body["feedbackByCriterion"] == {str(c["id"]): [] for c in ctx.criteria}
    assert body["totalResponses"] == 0


def test_my_feedback_is_private(client, make_survey):
    ctx = make_survey(student_count=2)
    res = _feedback(client, ctx, ctx.students[1], headers=ctx.students[0].headers)
    assert res.status_code == 403

    res = client.get(
        "/api/surveys/999/my-feedback",
        params={"targetStudentId": ctx.students[0].id},
        headers=ctx.students[0].headers,
    )
    assert res.status_code == 404


def test_results_aggregate_ratings(client, make_survey, submit):
    ctx = make_survey(student_count=3)
    first, second, third = ctx.students
    submit(ctx, first, {third.id: 5})
    submit(ctx, second, {third.id: 4})

    res = client.get(f"/api/surveys/{ctx.assignment['id']}/results", headers=ctx.instructor.headers)
    assert res.status_code == 200
    body = res.json()
    teamwork = body["aggregatedResults"][0]
    assert teamwork["criterionLabel"] == "Teamwork"
    assert teamwork["averageRating"] == 4.5
    assert teamwork["totalResponses"] == 2
    assert sorted(teamwork["ratings"]) == [4, 5]
    assert {r["respondentName"] for r in teamwork["responses"]} == {"Student 1", "Student 2"}
    assert body["assignment"]["survey"]["title"] == "Sprint 1 review"

    res = client.get(f"/api/surveys/{ctx.assignment['id']}/results", headers=first.headers)
    assert res.status_code == 403


def test_results_with_no_responses(client, make_survey):
    ctx = make_survey(student_count=2)
    body = client.get(
        f"/api/surveys/{ctx.assignment['id']}/results", headers=ctx.instructor.headers
    ).json()
    assert [r["averageRating"] for r in body["aggregatedResults"]] == [0, 0]
    assert body["overallStats"]["totalResponses"] == 0


def test_who_rated_me(client, make_survey, submit):
    ctx = make_survey(student_count=3)
    first, second, third = ctx.students
    submit(ctx, first, {third.id: 5})
    submit(ctx, first, {third.id: 3})

    res = client.get(
        f"/api/surveys/{ctx.assignment['id']}/who-rated-me",
        params={"targetStudentId": third.id},
        headers=third.headers,
    )
    assert res.status_code == 200
    assert res.json()["respondents"] == [{"id": first.id, "name": "Student 1", "email": first.email}]


def _response(respondent_id, answers):
    respondent = SimpleNamespace(id=respondent_id, name=f"R{respondent_id}", email=f"r{respondent_id}@example.com")
    return SimpleNamespace(respondent=respondent, answers=answers)


def test_group_by_criterion_drops_unknown_criteria():
    criteria = [SimpleNamespace(id=1), SimpleNamespace(id=2)]
    responses = [
        _response(10, {"1": {"text": "ok", "rating": 3}, "7": {"text": "stale", "rating": 1}}),
        _response(11, {"1": {"text": "", "rating": None}}),
    ]
    buckets = group_by_criterion(responses, criteria)
    assert set(buckets) == {"1", "2"}
    assert buckets["2"] == []
    assert [item["rating"] for item in buckets["1"]] == [3, 0]
    assert buckets["1"][0]["respondent"]["id"] == 10


def test_anonymize_feedback_relabels_each_criterion():
    buckets = {
        "1": [{"respondent": {"id": n}, "text": f"t{n}", "rating": n} for n in range(1, 6)],
        "2": [],
    }
    anonymized = anonymize_feedback(buckets, rng=random.Random(7))
    assert [item["anonymousId"] for item in anonymized["1"]] == [f"Peer {n}" for n in range(1, 6)]
    assert sorted(item["rating"] for item in anonymized["1"]) == [1, 2, 3, 4, 5]
    assert anonymized["2"] == []
    assert all("respondent" not in item for item in anonymized["1"])


def test_average_rating():
    assert average_rating([5, 4]) == 4.5
    assert average_rating([]) == 0
    assert average_rating([1, 2, 2]) == 1.67


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(66.665, 2) == 66.67
    assert round_half_up(100 / 3) == 33
