"""
School progression engine for Plastic Clever Schools Evidence Review

Recomputes a school's stage/round state from the evidence currently stored
for its current round. Every call starts from stored counts rather than a
cached decision, so concurrent or repeated calls converge on the same state
and a call with nothing new to record has no side effects.
"""

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models.constants import Stage, PROGRAM_STAGES
from services.delegates import ProgressionTrigger, best_effort


def compute_progress_percentage(rounds_completed: int, flags: dict) -> int:
    """Every completed round is worth 100; the open round adds a third per completed stage.

    Once ``act`` is complete the round is already counted in ``rounds_completed``,
    so the open-round share drops to zero instead of double counting it.
    """
    if flags.get(Stage.ACT):
        stage_part = 0
    else:
        completed = sum(1 for stage in PROGRAM_STAGES if flags.get(stage))
        stage_part = round(100 * completed / len(PROGRAM_STAGES))
    return (rounds_completed or 0) * 100 + stage_part


def _snapshot(school) -> tuple:
    return (
        school.current_round,
        school.current_stage,
        school.inspire_completed,
        school.investigate_completed,
        school.act_completed,
        school.rounds_completed,
        school.progress_percentage,
    )


class ProgressionEngine:
    def __init__(self, gateway, notifications):
        self.gateway = gateway
        self.notifications = notifications

    def compute_stage_satisfaction(self, school_id, round_number) -> dict:
        """Per stage: does every requirement have an approved, non-bonus item this round?"""
        requirements = self.gateway.list_requirements()
        satisfied = self.gateway.satisfied_requirement_ids(school_id, round_number)
        result = {}
        for stage in PROGRAM_STAGES:
            ids = [r.id for r in requirements if r.stage == stage]
            # A stage without requirements can never be completed
            result[stage] = bool(ids) and all(req_id in satisfied for req_id in ids)
        return result

    def check_and_update_school_progression(self, school_id, trigger: ProgressionTrigger = None):
        trigger = trigger or ProgressionTrigger()
        school = self.gateway.get_school(school_id)
        if school is None:
            current_app.logger.warning(f"Progression check skipped, school {school_id} not found ({trigger.describe()})")
            return None

        round_number = school.current_round or 1
        before = _snapshot(school)
        old_flags = school.stage_flags()
        computed = self.compute_stage_satisfaction(school.id, round_number)

        # Stages complete strictly in order and never un-complete within a round
        new_flags = {}
        previous_done = True
        for stage in PROGRAM_STAGES:
            new_flags[stage] = old_flags[stage] or (previous_done and computed[stage])
            previous_done = new_flags[stage]

        newly_completed = [s for s in PROGRAM_STAGES if new_flags[s] and not old_flags[s]]
        round_completed = Stage.ACT in newly_completed
        achievements = self.gateway.approved_counts_by_stage(school.id, round_number) if round_completed else None

        for stage in PROGRAM_STAGES:
            setattr(school, f"{stage}_completed", new_flags[stage])

        if round_completed:
            school.rounds_completed = (school.rounds_completed or 0) + 1
            current_app.logger.info(f"School {school.id} completed round {round_number} ({trigger.describe()})")
            if current_app.config.get("PROGRESSION_AUTO_ADVANCE_ROUND", True):
                school.current_round = round_number + 1
                for stage in PROGRAM_STAGES:
                    setattr(school, f"{stage}_completed", False)
                current_app.logger.info(f"School {school.id} advanced to round {school.current_round}")

        flags_now = school.stage_flags()
        school.current_stage = next((s for s in PROGRAM_STAGES if not flags_now[s]), Stage.ACT)
        school.progress_percentage = compute_progress_percentage(school.rounds_completed, flags_now)

        if _snapshot(school) == before:
            # nothing to persist, but a certificate lost earlier is still owed
            self._ensure_certificate(school)
            return school

        self.gateway.commit()
        current_app.logger.info(
            f"Progression updated for school {school.id}: stage={school.current_stage}, "
            f"round={school.current_round}, progress={school.progress_percentage}% ({trigger.describe()})"
        )

        certificate = None
        if round_completed:
            certificate = self._issue_certificate(school, round_number, achievements)
        else:
            self._ensure_certificate(school)

        self._notify(school, newly_completed, round_number, certificate)
        return school

    def _ensure_certificate(self, school):
        """Issue the certificate of the latest completed round if it is missing"""
        if not school.rounds_completed:
            return None
        current_round = school.current_round or 1
        completed_round = current_round if school.act_completed else current_round - 1
        if completed_round < 1 or self.gateway.get_certificate_for_round(school.id, completed_round) is not None:
            return None
        current_app.logger.warning(f"School {school.id} has no certificate for completed round {completed_round}, issuing it")
        achievements = self.gateway.approved_counts_by_stage(school.id, completed_round)
        return self._issue_certificate(school, completed_round, achievements)

    def _issue_certificate(self, school, round_number, achievements):
        existing = self.gateway.get_certificate_for_round(school.id, round_number)
        if existing is not None:
            return existing

        Certificate = self.gateway.Certificate
        certificate = Certificate(
            school_id=school.id,
            round_number=round_number,
            certificate_number=f"PCSR{round_number}-{int(time.time() * 1000)}-{school.id}",
            title=f"Round {round_number} Completion Certificate",
            description=f"Successfully completed all three stages (Inspire, Investigate, Act) in Round {round_number}",
            details={"round": round_number, "achievements": achievements or {}},
        )
        try:
            self.gateway.add(certificate)
            self.gateway.commit()
            current_app.logger.info(f"Issued certificate {certificate.certificate_number} to school {school.id}")
            return certificate
        except IntegrityError:
            # A concurrent check issued it first
            self.gateway.rollback()
            return self.gateway.get_certificate_for_round(school.id, round_number)

    def _notify(self, school, newly_completed, round_number, certificate):
        if not newly_completed:
            return
        contact = self.gateway.get_user(school.primary_contact_id)
        email = contact.email if contact else None
        if not email:
            current_app.logger.info(f"School {school.id} has no primary contact email, skipping completion notices")
            return
        for stage in newly_completed:
            if stage == Stage.ACT:
                best_effort(f"Round completion notice for school {school.id}",
                            self.notifications.send_round_completion, school, round_number, certificate, email)
            else:
                best_effort(f"Stage completion notice for school {school.id}",
                            self.notifications.send_stage_completion, school, stage, round_number, email)
