"""
Scoring Service

Pure functions turning one session's telemetry into skill scores.
No I/O and no shared state: safe to call from any number of tasks.
"""

import math
from typing import Optional

from learnlytics.models.enums import ProficiencyLevel
from learnlytics.schemas.scoring import SessionAssessment, SkillScores
from learnlytics.schemas.session import SessionRecord


# Lower bounds of each proficiency band, highest first
PROFICIENCY_BANDS: tuple[tuple[int, ProficiencyLevel], ...] = (
    (90, ProficiencyLevel.EXPERT),
    (80, ProficiencyLevel.ADVANCED),
    (60, ProficiencyLevel.INTERMEDIATE),
    (40, ProficiencyLevel.BEGINNER),
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded up."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def score_telemetry(
    completion_percentage: float,
    watch_duration: float,
    video_duration: float,
    pause_count: int,
    seek_count: int,
    replay_count: int,
    engagement_score: Optional[float],
) -> SkillScores:
    """
    Compute the four skill scores from raw telemetry.
    
    - technical: 0.7 * completion + 0.3 * engagement
    - speed: 100 minus pause and seek penalties, adjusted by how far the
      watch ratio (capped at 1.5) is from 1
    - accuracy: 100 minus replay penalty and 2 points per seek
    - skill: 0.4 * technical + 0.3 * speed + 0.3 * accuracy
    
    Sub-scores are clamped to [0, 100]; every score is rounded half-up.
    A missing engagement score counts as 0.
    """
    engagement = engagement_score or 0.0

    technical = clamp(0.7 * completion_percentage + 0.3 * engagement)

    watch_ratio = min(1.5, watch_duration / video_duration) if video_duration > 0 else 0.0
    pause_penalty = min(20.0, 2.0 * pause_count)
    seek_penalty = min(15.0, 1.5 * seek_count)
    speed = clamp(100.0 - pause_penalty - seek_penalty - 10.0 * (watch_ratio - 1.0))

    replay_penalty = min(25.0, 5.0 * replay_count)
    accuracy = clamp(100.0 - replay_penalty - 2.0 * seek_count)

    skill = 0.4 * technical + 0.3 * speed + 0.3 * accuracy

    return SkillScores(
        skill_score=round_half_up(skill),
        technical_score=round_half_up(technical),
        speed_score=round_half_up(speed),
        accuracy_score=round_half_up(accuracy),
    )


def score_session(session: SessionRecord) -> SkillScores:
    """Skill scores for a stored session."""
    return score_telemetry(
        completion_percentage=session.completion_percentage,
        watch_duration=session.watch_duration,
        video_duration=session.video_duration,
        pause_count=session.pause_count,
        seek_count=session.seek_count,
        replay_count=session.replay_count,
        engagement_score=session.engagement_score,
    )


def proficiency_level(skill_score: float) -> ProficiencyLevel:
    """
    Bucket a skill score.
    
    novice < 40 <= beginner < 60 <= intermediate < 80 <= advanced < 90 <= expert
    """
    for lower_bound, level in PROFICIENCY_BANDS:
        if skill_score >= lower_bound:
            return level
    return ProficiencyLevel.NOVICE


def assess_session(session: SessionRecord) -> SessionAssessment:
    """Scores and proficiency band for the feedback generator."""
    scores = score_session(session)
    return SessionAssessment(
        session_id=session.session_id,
        user_id=session.user_id,
        user_role_id=session.user_role_id,
        video_id=session.video_id,
        scores=scores,
        proficiency=proficiency_level(scores.skill_score),
    )


def session_engagement_score(
    completion_percentage: float,
    watch_duration: float,
    video_duration: float,
    pause_count: int,
    max_progress_reached: float,
) -> float:
    """
    Engagement score of a single session, as reported by the player.
    
    40% completion, 30% watch time (as a percentage of the video, capped
    at 100), 20% pause budget (20 points minus 2 per pause), 10% furthest
    progress. Capped at 100.
    """
    watch_pct = min(watch_duration / video_duration * 100.0, 100.0) if video_duration > 0 else 0.0
    score = (
        completion_percentage * 0.4
        + watch_pct * 0.3
        + max(0.0, 20.0 - pause_count * 2.0) * 0.2
        + max_progress_reached * 0.1
    )
    return clamp(score)
