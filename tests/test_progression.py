"""Unit tests for the progression engine: bootstrap, unlocks, module completion."""

import pytest

from conftest import make_syllabus
from coursegen.errors import CourseNotFound, InvalidTransition
from coursegen.schemas import Syllabus
from coursegen.services.progression import (
    ProgressionEngine,
    bootstrap_course,
    frontier,
    is_finished,
)


def flags(course):
    return [
        [(s.is_unlocked, s.is_completed) for s in m.sub_topics]
        for m in course.modules
    ]


class TestBootstrap:
    """A fresh course has exactly one unlocked sub-topic."""

    def test_only_first_sub_topic_unlocked(self):
        course = bootstrap_course(make_syllabus(3, 2, 4))
        assert flags(course) == [
            [(True, False), (False, False), (False, False)],
            [(False, False), (False, False)],
            [(False, False), (False, False), (False, False), (False, False)],
        ]
        assert not any(m.is_completed for m in course.modules)
        assert frontier(course) == (0, 0)

    def test_empty_syllabus(self):
        course = bootstrap_course(Syllabus(title="Nothing", modules=[]))
        assert course.modules == []
        assert frontier(course) is None

    def test_content_starts_empty(self):
        course = bootstrap_course(make_syllabus(1))
        sub_topic = course.sub_topic(0, 0)
        assert sub_topic.tutorial_content is None
        assert sub_topic.quiz is None
        assert not sub_topic.has_content


class TestRecordQuizPass:
    """Tests for the Unlocked -> Completed transition and its side effects."""

    def setup_method(self):
        self.engine = ProgressionEngine()

    def test_linear_unlock_within_module(self):
        course = bootstrap_course(make_syllabus(2, 1))
        result = self.engine.record_quiz_pass(course, 0, 0)

        assert flags(result.course)[0] == [(True, True), (True, False)]
        assert result.course.modules[0].is_completed is False
        assert result.completed_module is None
        assert frontier(result.course) == (0, 1)

    def test_module_completion_reports_title(self):
        course = bootstrap_course(make_syllabus(2, 1))
        course = self.engine.record_quiz_pass(course, 0, 0).course
        result = self.engine.record_quiz_pass(course, 0, 1)

        assert result.course.modules[0].is_completed is True
        assert result.completed_module == "Module 1"

    def test_cross_module_unlock(self):
        course = bootstrap_course(make_syllabus(1, 2))
        result = self.engine.record_quiz_pass(course, 0, 0)

        assert flags(result.course) == [
            [(True, True)],
            [(True, False), (False, False)],
        ]
        assert frontier(result.course) == (1, 0)

    def test_last_sub_topic_finishes_course(self):
        course = bootstrap_course(make_syllabus(1, 1))
        course = self.engine.record_quiz_pass(course, 0, 0).course
        result = self.engine.record_quiz_pass(course, 1, 0)

        assert result.completed_module == "Module 2"
        assert frontier(result.course) is None
        assert is_finished(result.course)

    def test_input_snapshot_not_mutated(self):
        course = bootstrap_course(make_syllabus(2))
        before = course.model_dump()
        result = self.engine.record_quiz_pass(course, 0, 0)

        assert course.model_dump() == before
        assert result.course is not course

    def test_locked_sub_topic_rejected(self):
        course = bootstrap_course(make_syllabus(2))
        with pytest.raises(InvalidTransition):
            self.engine.record_quiz_pass(course, 0, 1)

    def test_completed_sub_topic_rejected(self):
        course = bootstrap_course(make_syllabus(2))
        course = self.engine.record_quiz_pass(course, 0, 0).course
        with pytest.raises(InvalidTransition):
            self.engine.record_quiz_pass(course, 0, 0)

    def test_out_of_range(self):
        course = bootstrap_course(make_syllabus(2))
        with pytest.raises(CourseNotFound):
            self.engine.record_quiz_pass(course, 3, 0)
        with pytest.raises(CourseNotFound):
            self.engine.record_quiz_pass(course, 0, -1)

    def test_flags_are_monotonic_through_whole_course(self):
        course = bootstrap_course(make_syllabus(3, 2, 1))
        previous = flags(course)

        while (position := frontier(course)) is not None:
            course = self.engine.record_quiz_pass(course, *position).course
            current = flags(course)
            for old_module, new_module in zip(previous, current):
                for (was_unlocked, was_done), (unlocked, done) in zip(old_module, new_module):
                    assert unlocked or not was_unlocked
                    assert done or not was_done
                    assert unlocked or not done
            previous = current

        assert is_finished(course)

    def test_single_frontier(self):
        course = bootstrap_course(make_syllabus(2, 2))
        for _ in range(3):
            course = self.engine.record_quiz_pass(course, *frontier(course)).course
            open_ = [
                (s.is_unlocked and not s.is_completed)
                for m in course.modules for s in m.sub_topics
            ]
            assert open_.count(True) == 1
