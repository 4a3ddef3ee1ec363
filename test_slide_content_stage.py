"""
Slide content stage: ordering, partial failure and resume
"""

import asyncio

import pytest

from deckgen.core.exceptions import ErrorKind, GenerationError, StageFailedError
from deckgen.models.project import Audience, BulletStyle, KeyPoint
from deckgen.models.workflow import WorkflowStage
from deckgen.services.stages import SlideContentStage


def key_points(count=5):
    return [KeyPoint(content=f"Key point number {i}", order=i) for i in range(1, count + 1)]


def test_output_follows_key_point_order_despite_reverse_completion(mock_client_class):
    # slide 1 is slowest, slide 5 fastest
    delays = {i: 0.01 * (6 - i) for i in range(1, 6)}
    client = mock_client_class(slide_delays=delays)
    stage = SlideContentStage(client, max_concurrency=5)

    slides = asyncio.run(stage.run(key_points(), Audience.ADULTS))

    assert client.slide_completion_order == [5, 4, 3, 2, 1]
    assert [slide.slide_number for slide in slides] == [1, 2, 3, 4, 5]
    assert [slide.title for slide in slides] == [f"Slide {i}" for i in range(1, 6)]
    assert slides[0].notes == "Notes 1"
    assert slides[0].image_prompt == "Image 1"


def test_concurrency_is_bounded(mock_client_class):
    in_flight = {"now": 0, "peak": 0}

    class CountingClient(mock_client_class):
        async def generate_slide_content(self, key_point, audience, slide_number, total_slides):
            in_flight["now"] += 1
            in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
            try:
                await asyncio.sleep(0.01)
                return await super().generate_slide_content(key_point, audience, slide_number, total_slides)
            finally:
                in_flight["now"] -= 1

    stage = SlideContentStage(CountingClient(), max_concurrency=2)
    slides = asyncio.run(stage.run(key_points(6), Audience.ADULTS))

    assert len(slides) == 6
    assert in_flight["peak"] == 2


def test_design_spec_follows_audience(mock_client_class):
    stage = SlideContentStage(mock_client_class())

    slides = asyncio.run(stage.run(key_points(3), Audience.KIDS))

    assert all(slide.design_spec.background_color == "#FFEB3B" for slide in slides)
    assert all(slide.design_spec.bullet_style == BulletStyle.CHECKMARK for slide in slides)


def test_failure_hands_back_partial_results(mock_client_class):
    failure = GenerationError("server error", kind=ErrorKind.TRANSIENT)
    client = mock_client_class(slide_failures={4: failure})
    stage = SlideContentStage(client, max_concurrency=1)

    with pytest.raises(StageFailedError) as exc_info:
        asyncio.run(stage.run(key_points(), Audience.ADULTS))

    error = exc_info.value
    assert error.stage == WorkflowStage.GENERATING_SLIDES
    assert error.kind == ErrorKind.TRANSIENT
    assert error.cause is failure
    assert sorted(error.partial) == [1, 2, 3]
    # nothing new is dispatched after the failure is observed
    assert client.slide_calls == [1, 2, 3, 4]


def test_resume_only_requests_remaining_slides(mock_client_class):
    failing = mock_client_class(slide_failures={4: GenerationError("boom", kind=ErrorKind.TRANSIENT)})
    stage = SlideContentStage(failing, max_concurrency=1)
    with pytest.raises(StageFailedError) as exc_info:
        asyncio.run(stage.run(key_points(), Audience.ADULTS))
    partial = exc_info.value.partial

    client = mock_client_class()
    resumed = SlideContentStage(client, max_concurrency=4)
    slides = asyncio.run(resumed.run(key_points(), Audience.ADULTS, completed=partial))

    assert sorted(client.slide_calls) == [4, 5]
    assert [slide.slide_number for slide in slides] == [1, 2, 3, 4, 5]
    assert slides[0] is partial[1]


def test_progress_is_monotonic(mock_client_class):
    delays = {i: 0.01 * (6 - i) for i in range(1, 6)}
    stage = SlideContentStage(mock_client_class(slide_delays=delays), max_concurrency=3)
    reports = []

    asyncio.run(stage.run(key_points(), Audience.ADULTS, on_progress=lambda done, total: reports.append((done, total))))

    assert reports[0] == (0, 5)
    assert reports[-1] == (5, 5)
    completed = [done for done, _ in reports]
    assert completed == sorted(completed)


def test_cancellation_stops_dispatch(mock_client_class):
    cancel_event = asyncio.Event()

    class CancellingClient(mock_client_class):
        async def generate_slide_content(self, key_point, audience, slide_number, total_slides):
            if slide_number == 2:
                cancel_event.set()
            return await super().generate_slide_content(key_point, audience, slide_number, total_slides)

    client = CancellingClient()
    stage = SlideContentStage(client, max_concurrency=1)

    with pytest.raises(StageFailedError) as exc_info:
        asyncio.run(stage.run(key_points(), Audience.ADULTS, cancel_event=cancel_event))

    assert exc_info.value.kind == ErrorKind.CANCELLED
    assert client.slide_calls == [1, 2]
    assert sorted(exc_info.value.partial) == [1, 2]
