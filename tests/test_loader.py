"""Unit tests for the content loader: fetch-once, fan-out, no partial writes."""

import asyncio

import pytest

from conftest import FakeProvider, make_quiz, make_syllabus, make_tutorial
from coursegen.errors import ContentLoadFailed, InvalidTransition
from coursegen.services.loader import ContentLoader
from coursegen.services.progression import bootstrap_course


@pytest.mark.asyncio
async def test_first_open_fetches_tutorial_and_quiz():
    provider = FakeProvider()
    course = bootstrap_course(make_syllabus(2))

    loaded = await ContentLoader(provider).ensure_content(course, 0, 0)

    sub_topic = loaded.sub_topic(0, 0)
    assert sub_topic.has_content
    assert len(sub_topic.quiz) == 10
    assert provider.calls["tutorial"] == [("Topic 1.1", "One sentence.")]
    assert provider.calls["quiz"] == [("Topic 1.1",)]
    # Original snapshot untouched
    assert not course.sub_topic(0, 0).has_content


@pytest.mark.asyncio
async def test_second_open_makes_no_requests():
    provider = FakeProvider()
    loader = ContentLoader(provider)
    course = await loader.ensure_content(bootstrap_course(make_syllabus(2)), 0, 0)

    again = await loader.ensure_content(course, 0, 0)

    assert again is course
    assert len(provider.calls["tutorial"]) == 1
    assert len(provider.calls["quiz"]) == 1
    assert again.sub_topic(0, 0).quiz == course.sub_topic(0, 0).quiz


@pytest.mark.asyncio
async def test_requests_run_concurrently():
    started = []
    release = asyncio.Event()

    class SlowProvider(FakeProvider):
        async def generate_tutorial(self, title, description):
            started.append("tutorial")
            await release.wait()
            return make_tutorial(title)

        async def generate_quiz(self, title):
            started.append("quiz")
            await release.wait()
            return make_quiz(title)

    course = bootstrap_course(make_syllabus(1))
    task = asyncio.create_task(ContentLoader(SlowProvider()).ensure_content(course, 0, 0))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert sorted(started) == ["quiz", "tutorial"]
    release.set()
    loaded = await task
    assert loaded.sub_topic(0, 0).has_content


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", ["tutorial", "quiz"])
async def test_failure_leaves_sub_topic_unloaded(failing):
    provider = FakeProvider()
    provider.failing.add(failing)
    course = bootstrap_course(make_syllabus(1))

    with pytest.raises(ContentLoadFailed):
        await ContentLoader(provider).ensure_content(course, 0, 0)

    sub_topic = course.sub_topic(0, 0)
    assert sub_topic.tutorial_content is None
    assert sub_topic.quiz is None
    assert sub_topic.is_unlocked


@pytest.mark.asyncio
async def test_retry_after_failure_succeeds():
    provider = FakeProvider()
    provider.failing.add("quiz")
    loader = ContentLoader(provider)
    course = bootstrap_course(make_syllabus(1))

    with pytest.raises(ContentLoadFailed):
        await loader.ensure_content(course, 0, 0)

    provider.failing.clear()
    loaded = await loader.ensure_content(course, 0, 0)
    assert loaded.sub_topic(0, 0).has_content


@pytest.mark.asyncio
async def test_locked_sub_topic_cannot_be_opened():
    provider = FakeProvider()
    course = bootstrap_course(make_syllabus(2))

    with pytest.raises(InvalidTransition):
        await ContentLoader(provider).ensure_content(course, 0, 1)
    assert provider.calls["tutorial"] == []
