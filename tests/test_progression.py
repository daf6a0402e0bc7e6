import pytest

from models.constants import Stage
from services.delegates import ProgressionTrigger
from services.progression import compute_progress_percentage


@pytest.mark.parametrize("rounds, flags, expected", [
    (0, {}, 0),
    (0, {Stage.INSPIRE: True}, 33),
    (0, {Stage.INSPIRE: True, Stage.INVESTIGATE: True}, 67),
    (1, {Stage.INSPIRE: True, Stage.INVESTIGATE: True, Stage.ACT: True}, 100),
    (1, {}, 100),
    (2, {Stage.INSPIRE: True}, 233),
])
def test_progress_percentage(rounds, flags, expected):
    assert compute_progress_percentage(rounds, flags) == expected


def _approve(services, seed, make_evidence, requirement_id, round_number=1):
    evidence_id = make_evidence(requirement_id=requirement_id, round_number=round_number)
    services.review.review_one(evidence_id, "approved", None, seed.admin)
    return evidence_id


def test_full_round_issues_certificate_and_advances(app, services, seed, make_evidence, notifications):
    _approve(services, seed, make_evidence, seed.inspire)
    _approve(services, seed, make_evidence, seed.investigate)
    school = services.gateway.get_school(seed.school)
    assert school.current_stage == Stage.ACT
    assert school.progress_percentage == 67

    _approve(services, seed, make_evidence, seed.act)

    school = services.gateway.get_school(seed.school)
    assert school.rounds_completed == 1
    assert school.current_round == 2
    assert school.current_stage == Stage.INSPIRE
    assert (school.inspire_completed, school.investigate_completed, school.act_completed) == (False, False, False)
    assert school.progress_percentage == 100

    certificates = services.gateway.list_certificates(seed.school)
    assert len(certificates) == 1
    assert certificates[0].round_number == 1
    assert certificates[0].certificate_number.startswith("PCSR1-")
    assert certificates[0].details["achievements"][Stage.ACT] == 1

    assert [c[2] for c in notifications.of("stage_completion")] == [Stage.INSPIRE, Stage.INVESTIGATE]
    rounds = notifications.of("round_completion")
    assert rounds == [("round_completion", seed.school, 1, certificates[0].id, "teacher@example.org")]


def test_second_check_has_no_side_effects(services, seed, make_evidence, notifications):
    _approve(services, seed, make_evidence, seed.inspire)
    _approve(services, seed, make_evidence, seed.investigate)
    _approve(services, seed, make_evidence, seed.act)
    school = services.gateway.get_school(seed.school)
    before = school.to_dict()
    calls_before = list(notifications.calls)

    services.progression.check_and_update_school_progression(seed.school)
    services.progression.check_and_update_school_progression(seed.school)

    assert services.gateway.get_school(seed.school).to_dict() == before
    assert notifications.calls == calls_before
    assert len(services.gateway.list_certificates(seed.school)) == 1


def test_repeated_check_within_round_is_idempotent(services, seed, make_evidence, notifications):
    _approve(services, seed, make_evidence, seed.inspire)
    before = services.gateway.get_school(seed.school).to_dict()

    services.progression.check_and_update_school_progression(seed.school, ProgressionTrigger("manual_admin"))

    assert services.gateway.get_school(seed.school).to_dict() == before
    assert len(notifications.of("stage_completion")) == 1


def test_stage_flags_never_regress_within_round(services, seed, make_evidence):
    evidence_id = _approve(services, seed, make_evidence, seed.inspire)
    assert services.gateway.get_school(seed.school).inspire_completed is True

    services.lifecycle.update(evidence_id, {"status": "rejected"}, seed.admin)

    school = services.gateway.get_school(seed.school)
    assert school.inspire_completed is True
    assert school.progress_percentage == 33


def test_stages_complete_in_order(services, seed, make_evidence):
    _approve(services, seed, make_evidence, seed.act)
    school = services.gateway.get_school(seed.school)
    assert school.act_completed is False
    assert school.current_stage == Stage.INSPIRE

    _approve(services, seed, make_evidence, seed.inspire)
    _approve(services, seed, make_evidence, seed.investigate)

    # investigate unlocks act, which was already satisfied
    school = services.gateway.get_school(seed.school)
    assert school.rounds_completed == 1
    assert school.current_round == 2


def test_stage_without_requirements_never_completes(app, services, seed, make_evidence):
    requirement = services.gateway.get_requirement(seed.investigate)
    app.db.session.delete(requirement)
    app.db.session.commit()

    _approve(services, seed, make_evidence, seed.inspire)
    _approve(services, seed, make_evidence, seed.act)

    satisfaction = services.progression.compute_stage_satisfaction(seed.school, 1)
    assert satisfaction[Stage.INVESTIGATE] is False
    school = services.gateway.get_school(seed.school)
    assert school.inspire_completed is True
    assert school.act_completed is False


def test_bonus_and_other_round_evidence_do_not_count(app, services, seed, make_evidence):
    make_evidence(is_bonus=True, status="approved")
    make_evidence(requirement_id=seed.inspire, status="approved", round_number=2)

    services.progression.check_and_update_school_progression(seed.school)

    assert services.gateway.get_school(seed.school).inspire_completed is False


def test_every_requirement_of_a_stage_is_needed(app, services, seed, make_evidence):
    extra = app.models["EvidenceRequirement"](title="Eco-committee", stage=Stage.INSPIRE, order_index=2)
    app.db.session.add(extra)
    app.db.session.commit()

    _approve(services, seed, make_evidence, seed.inspire)
    assert services.gateway.get_school(seed.school).inspire_completed is False

    _approve(services, seed, make_evidence, extra.id)
    assert services.gateway.get_school(seed.school).inspire_completed is True


def test_without_auto_advance_round_stays(app, services, seed, make_evidence):
    app.config["PROGRESSION_AUTO_ADVANCE_ROUND"] = False
    for requirement_id in (seed.inspire, seed.investigate, seed.act):
        _approve(services, seed, make_evidence, requirement_id)

    school = services.gateway.get_school(seed.school)
    assert school.current_round == 1
    assert school.act_completed is True
    assert school.current_stage == Stage.ACT
    assert school.rounds_completed == 1
    assert school.progress_percentage == 100

    services.progression.check_and_update_school_progression(seed.school)
    assert services.gateway.get_school(seed.school).rounds_completed == 1
    assert len(services.gateway.list_certificates(seed.school)) == 1


def test_stages_completed_together_name_the_finished_round(services, seed, make_evidence, notifications):
    # later stages approved first cannot complete until inspire does
    _approve(services, seed, make_evidence, seed.investigate)
    _approve(services, seed, make_evidence, seed.act)
    assert notifications.of("stage_completion") == []

    _approve(services, seed, make_evidence, seed.inspire)

    school = services.gateway.get_school(seed.school)
    assert school.current_round == 2
    assert notifications.of("stage_completion") == [
        ("stage_completion", seed.school, Stage.INSPIRE, 1, "teacher@example.org"),
        ("stage_completion", seed.school, Stage.INVESTIGATE, 1, "teacher@example.org"),
    ]
    assert [c[2] for c in notifications.of("round_completion")] == [1]


def test_recheck_issues_certificate_lost_after_round_advance(app, services, seed, make_evidence):
    for requirement_id in (seed.inspire, seed.investigate, seed.act):
        _approve(services, seed, make_evidence, requirement_id)
    app.db.session.delete(services.gateway.get_certificate_for_round(seed.school, 1))
    app.db.session.commit()

    services.progression.check_and_update_school_progression(seed.school)

    certificates = services.gateway.list_certificates(seed.school)
    assert [c.round_number for c in certificates] == [1]
    assert services.gateway.get_school(seed.school).rounds_completed == 1


def test_certificate_issued_once_per_round(services, seed):
    school = services.gateway.get_school(seed.school)
    first = services.progression._issue_certificate(school, 1, {})
    second = services.progression._issue_certificate(school, 1, {})
    assert first.id == second.id
    assert len(services.gateway.list_certificates(seed.school)) == 1


def test_missing_school_is_ignored(services):
    assert services.progression.check_and_update_school_progression(9999) is None


def test_completion_notice_skipped_without_primary_contact(app, services, seed, make_evidence, notifications):
    school = services.gateway.get_school(seed.school)
    school.primary_contact_id = None
    app.db.session.commit()

    _approve(services, seed, make_evidence, seed.inspire)

    assert services.gateway.get_school(seed.school).inspire_completed is True
    assert notifications.of("stage_completion") == []
