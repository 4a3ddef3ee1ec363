"""
Progress channel and workflow state
"""

import asyncio

from deckgen.core.exceptions import ErrorKind
from deckgen.models.workflow import ProgressChannel, WorkflowStage, WorkflowState, WorkflowStatus


def test_regressive_events_are_dropped():
    channel = ProgressChannel()

    assert channel.publish(WorkflowState.generating_slides(0, 5))
    assert channel.publish(WorkflowState.generating_slides(2, 5))
    assert not channel.publish(WorkflowState.generating_slides(1, 5))
    assert channel.publish(WorkflowState.generating_slides(2, 5))
    # a new stage starts counting again
    assert channel.publish(WorkflowState.generating_images(0, 5))

    completed = [event.state.completed for event in channel.history]
    assert completed == [0, 2, 2, 0]


def test_channel_closes_after_terminal_state():
    channel = ProgressChannel()
    channel.publish(WorkflowState.importing_content())
    channel.publish(WorkflowState.failed(WorkflowStage.GENERATING_IMAGES, ErrorKind.CANCELLED))

    assert channel.closed
    assert not channel.publish(WorkflowState.ready())


def test_async_iteration_ends_at_terminal_state():
    async def scenario():
        channel = ProgressChannel()
        received = []

        async def consume():
            async for event in channel:
                received.append(event.state.status)

        consumer = asyncio.create_task(consume())
        channel.publish(WorkflowState.importing_content())
        channel.publish(WorkflowState.analyzing_content(0.5))
        await asyncio.sleep(0)
        channel.publish(WorkflowState.ready())
        await consumer
        return received

    assert asyncio.run(scenario()) == [
        WorkflowStatus.IMPORTING_CONTENT, WorkflowStatus.ANALYZING_CONTENT, WorkflowStatus.READY
    ]


def test_failed_state_describes_stage_and_kind():
    state = WorkflowState.failed(WorkflowStage.GENERATING_SLIDES, ErrorKind.RATE_LIMITED)
    assert state.is_terminal
    assert state.stage == WorkflowStage.GENERATING_SLIDES
    assert state.describe() == "failed at generating_slides (rate_limited)"
    assert WorkflowState.generating_images(2, 5).describe() == "generating_images (2/5)"
    assert WorkflowState.not_started().stage is None
