# backend/tests/unit/test_review_and_ratings.py
"""
Tests for review submission and rating aggregation.
"""

from datetime import timedelta

import pytest

from skillswap.core.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from skillswap.models.review import Review, ReviewStatus
from skillswap.models.session import SkillSession
from skillswap.services.rating_aggregator import RatingAggregator
from skillswap.services.ratings_math import average_rating, round_rating
from skillswap.services.review_service import ReviewService

COMMENT = "Patient and well prepared."


class TestRatingsMath:
    def test_empty_is_zero(self):
        assert average_rating([]) == (0.0, 0)

    def test_plain_mean(self):
        assert average_rating([5, 4, 3]) == (4.0, 3)

    @pytest.mark.parametrize(
        "value, expected",
        [(4.25, 4.3), (4.24, 4.2), (4.35, 4.4), (1.05, 1.1), (5, 5.0)],
    )
    def test_round_half_up(self, value, expected):
        assert round_rating(value) == expected

    def test_mean_rounds_half_up(self):
        # 17 / 4 = 4.25
        assert average_rating([5, 4, 4, 4]) == (4.3, 4)


@pytest.fixture
def completed_session(clock, session_service, alice, bob, create_payload):
    start = clock.now + timedelta(days=1)
    created = session_service.create_session_request(alice.id, create_payload(bob.id, start))
    session_service.respond_to_session_request(created.id, bob.id, "accept")
    clock.set(start + timedelta(hours=1))
    session_service.complete_session(created.id, bob.id)
    return created


class TestReviewService:
    def test_submit_review(self, db, completed_session, alice, bob):
        review = ReviewService(db).submit_review(alice.id, completed_session.id, 4, f"  {COMMENT}  ")

        assert review.reviewer_id == alice.id
        assert review.reviewee_id == bob.id
        assert review.rating == 4
        assert review.comment == COMMENT
        assert review.status == ReviewStatus.ACTIVE
        db.refresh(bob)
        assert (bob.rating_average, bob.rating_count) == (4.0, 1)

    def test_both_participants_may_review(self, db, completed_session, alice, bob):
        service = ReviewService(db)

        service.submit_review(alice.id, completed_session.id, 5, COMMENT)
        service.submit_review(bob.id, completed_session.id, 3, COMMENT)

        db.refresh(alice)
        db.refresh(bob)
        assert (alice.rating_average, alice.rating_count) == (3.0, 1)
        assert (bob.rating_average, bob.rating_count) == (5.0, 1)

    def test_duplicate_review_rejected(self, db, completed_session, alice):
        service = ReviewService(db)
        service.submit_review(alice.id, completed_session.id, 5, COMMENT)

        with pytest.raises(ConflictException) as exc_info:
            service.submit_review(alice.id, completed_session.id, 1, COMMENT)

        assert exc_info.value.code == "DUPLICATE_REVIEW"
        assert db.query(Review).count() == 1

    def test_review_requires_completed_session(self, db, clock, session_service, alice, bob, create_payload):
        created = session_service.create_session_request(
            alice.id, create_payload(bob.id, clock.now + timedelta(days=1))
        )

        with pytest.raises(ValidationException) as exc_info:
            ReviewService(db).submit_review(alice.id, created.id, 5, COMMENT)

        assert exc_info.value.message == "Can only provide feedback for completed sessions"

    def test_outsider_cannot_review(self, db, completed_session, carol):
        with pytest.raises(AuthorizationException):
            ReviewService(db).submit_review(carol.id, completed_session.id, 5, COMMENT)

    def test_unknown_session(self, db, alice):
        with pytest.raises(NotFoundException):
            ReviewService(db).submit_review(alice.id, "01NOSUCHSESSION00000000000", 5, COMMENT)

    @pytest.mark.parametrize("rating, comment", [(0, COMMENT), (6, COMMENT), (5, "too short")])
    def test_invalid_payload(self, db, completed_session, alice, rating, comment):
        with pytest.raises(ValidationException) as exc_info:
            ReviewService(db).submit_review(alice.id, completed_session.id, rating, comment)

        assert exc_info.value.code == "INVALID_REVIEW"

    def test_hiding_a_review_recomputes_rating(self, db, completed_session, alice, bob):
        service = ReviewService(db)
        review = service.submit_review(alice.id, completed_session.id, 2, COMMENT)

        service.set_review_status(review.id, ReviewStatus.HIDDEN)

        db.refresh(bob)
        assert (bob.rating_average, bob.rating_count) == (0.0, 0)


class TestRatingAggregator:
    def _add_review(self, db, session_id, reviewer, reviewee, rating, status=ReviewStatus.ACTIVE):
        review = Review(
            session_id=session_id,
            reviewer_id=reviewer.id,
            reviewee_id=reviewee.id,
            rating=rating,
            comment=COMMENT,
            status=status.value,
        )
        db.add(review)
        db.commit()
        return review

    def _add_session(self, db, requester, provider, start):
        session = SkillSession(
            requester_id=requester.id,
            provider_id=provider.id,
            skill_name="Chess",
            skill_category="Games",
            skill_level="advanced",
            scheduled_date=start,
            duration_minutes=60,
            timezone="UTC",
            session_type="online",
            status="completed",
        )
        db.add(session)
        db.commit()
        return session

    def test_no_reviews(self, db, bob):
        summary = RatingAggregator(db).recompute_rating(bob.id)

        assert (summary.average, summary.count) == (0.0, 0)

    def test_only_active_reviews_count(self, db, clock, alice, bob, carol):
        s1 = self._add_session(db, alice, bob, clock.now - timedelta(days=3))
        s2 = self._add_session(db, carol, bob, clock.now - timedelta(days=2))
        s3 = self._add_session(db, carol, bob, clock.now - timedelta(days=1))
        self._add_review(db, s1.id, alice, bob, 5)
        self._add_review(db, s2.id, carol, bob, 4)
        self._add_review(db, s3.id, carol, bob, 1, status=ReviewStatus.HIDDEN)

        summary = RatingAggregator(db).recompute_rating(bob.id)

        assert (summary.average, summary.count) == (4.5, 2)

    def test_recompute_is_idempotent(self, db, clock, alice, bob):
        s1 = self._add_session(db, alice, bob, clock.now - timedelta(days=1))
        self._add_review(db, s1.id, alice, bob, 3)
        aggregator = RatingAggregator(db)

        first = aggregator.recompute_rating(bob.id)
        second = aggregator.recompute_rating(bob.id)

        assert first == second

    def test_recompute_repairs_drift(self, db, bob):
        bob.rating_average = 4.9
        bob.rating_count = 12
        db.commit()

        RatingAggregator(db).recompute_rating(bob.id)

        db.refresh(bob)
        assert (bob.rating_average, bob.rating_count) == (0.0, 0)

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundException):
            RatingAggregator(db).recompute_rating("01NOSUCHUSER00000000000000")
