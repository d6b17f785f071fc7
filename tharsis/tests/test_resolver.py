"""
Tests for the input resolver.

Tests:
- Or trees resolve exactly one option
- Invalid indices and wrong response kinds are rejected without mutation
- And trees resolve in order and run their action once complete
- Nested composites lock the enclosing Or until they finish
- Follow-ups produced by actions are returned
"""

import pytest

from ..engine_core.action import Action
from ..errors import (
    AmountOutOfRangeError,
    InvalidIndexError,
    InvalidPayloadError,
    OutOfOrderError,
    WrongResponseError,
)
from ..inputs import (
    AndOptions,
    AmountResponse,
    CustomResponse,
    InputResolver,
    OptionResponse,
    OrOptions,
    SelectAmount,
    SelectCustom,
    SelectOption,
    and_response,
    or_response,
    parse_response,
)
from .conftest import RecordingRunner, three_way_choice


def logging_or(count: int) -> OrOptions:
    return OrOptions(
        title="Pick",
        options=[SelectOption(f"opt{i}", action=Action.log(f"chose {i}")) for i in range(count)],
    )


class TestOrOptions:
    """Tests for resolving Or trees."""

    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_only_chosen_option_runs(self, index):
        """Exactly the chosen option's action runs."""
        runner = RecordingRunner()
        tree = logging_or(3)

        resolution = InputResolver(runner).resolve(tree, or_response(index, OptionResponse()))

        assert resolution.completed
        assert resolution.path == (index,)
        assert [a.data["message"] for a, _ in runner.calls] == [f"chose {index}"]

    @pytest.mark.parametrize("count", [0, 1, 2, 3, 4])
    def test_invalid_index_rejected(self, count):
        """Indices outside [0, n) are rejected for every n."""
        runner = RecordingRunner()
        tree = logging_or(count)
        resolver = InputResolver(runner)

        for index in (-1, count, count + 5):
            with pytest.raises(InvalidIndexError) as exc_info:
                resolver.resolve(tree, or_response(index, OptionResponse()))
            assert exc_info.value.index == index
            assert exc_info.value.count == count

        assert runner.calls == []

    def test_amount_under_or(self):
        """The parsed amount reaches the leaf action."""
        runner = RecordingRunner()
        tree = three_way_choice()

        resolution = InputResolver(runner).resolve(
            tree, parse_response({"type": "or", "index": 2, "response": {"type": "amount", "amount": 8}})
        )

        assert resolution.completed
        assert resolution.value == 8
        assert resolution.path == (2,)
        action, value = runner.calls[0]
        assert action.data["resource"] == "credits"
        assert value == 8

    @pytest.mark.parametrize("amount", [-1, 11, 100])
    def test_amount_out_of_range(self, amount):
        """Amounts outside the bounds are rejected."""
        runner = RecordingRunner()
        tree = three_way_choice()

        with pytest.raises(AmountOutOfRangeError):
            InputResolver(runner).resolve(tree, or_response(2, AmountResponse(amount=amount)))

        assert runner.calls == []

    @pytest.mark.parametrize("amount", [0, 10])
    def test_amount_bounds_inclusive(self, amount):
        runner = RecordingRunner()
        resolution = InputResolver(runner).resolve(
            three_way_choice(), or_response(2, AmountResponse(amount=amount))
        )
        assert resolution.value == amount


class TestWrongKind:
    """Mismatched response kinds never partially apply."""

    def test_wrong_root_kind(self, runner):
        tree = logging_or(2)

        with pytest.raises(WrongResponseError) as exc_info:
            InputResolver(runner).resolve(tree, AmountResponse(amount=1))

        assert exc_info.value.expected == "or"
        assert exc_info.value.received == "amount"
        assert runner.calls == []

    def test_wrong_leaf_kind(self, runner):
        """An amount sent to an option leaf is rejected."""
        tree = three_way_choice()

        with pytest.raises(WrongResponseError):
            InputResolver(runner).resolve(tree, or_response(0, AmountResponse(amount=3)))

        assert runner.calls == []

    def test_wrong_kind_inside_and_leaves_cursor(self, runner):
        """A bad response deep in the tree leaves And progress untouched."""
        tree = three_way_choice()
        inner = tree.options[1]

        with pytest.raises(WrongResponseError):
            InputResolver(runner).resolve(
                tree, or_response(1, and_response(0, AmountResponse(amount=1)))
            )

        assert inner.cursor == 0
        assert tree.selected is None
        assert runner.calls == []


class TestAndOptions:
    """Tests for resolving And trees."""

    def test_resolves_in_order(self, runner):
        tree = AndOptions.of(
            "Both",
            SelectOption("a", action=Action.log("a")),
            SelectOption("b", action=Action.log("b")),
            action=Action.log("done"),
        )
        resolver = InputResolver(runner)

        first = resolver.resolve(tree, and_response(0, OptionResponse()))
        assert not first.completed
        assert tree.cursor == 1

        second = resolver.resolve(tree, and_response(1, OptionResponse()))
        assert second.completed
        assert [a.data["message"] for a, _ in runner.calls] == ["a", "b", "done"]

    def test_out_of_order_rejected(self, runner):
        tree = AndOptions.of("Both", SelectOption("a"), SelectOption("b"))

        with pytest.raises(OutOfOrderError) as exc_info:
            InputResolver(runner).resolve(tree, and_response(1, OptionResponse()))

        assert exc_info.value.expected == 0
        assert tree.cursor == 0

    def test_answered_option_cannot_repeat(self, runner):
        tree = AndOptions.of("Both", SelectOption("a"), SelectOption("b"))
        resolver = InputResolver(runner)
        resolver.resolve(tree, and_response(0, OptionResponse()))

        with pytest.raises(OutOfOrderError):
            resolver.resolve(tree, and_response(0, OptionResponse()))


class TestNestedTrees:
    """Composite options inside an Or."""

    def test_or_locks_to_partial_and(self, runner):
        """After answering part of an And, the Or cannot switch options."""
        tree = three_way_choice()
        resolver = InputResolver(runner)

        partial = resolver.resolve(tree, or_response(1, and_response(0, OptionResponse())))
        assert not partial.completed
        assert tree.selected == 1

        with pytest.raises(OutOfOrderError):
            resolver.resolve(tree, or_response(0, OptionResponse()))

        done = resolver.resolve(tree, or_response(1, and_response(1, OptionResponse())))
        assert done.completed
        assert tree.selected is None
        messages = [a.data.get("message") for a, _ in runner.calls]
        assert messages[-1] == "did both"

    def test_and_action_runs_after_last_child(self, runner):
        tree = three_way_choice()
        resolver = InputResolver(runner)
        resolver.resolve(tree, or_response(1, and_response(0, OptionResponse())))
        assert len(runner.calls) == 1

        resolver.resolve(tree, or_response(1, and_response(1, OptionResponse())))
        assert len(runner.calls) == 3


class TestCustom:
    def test_payload_passed_to_action(self, runner):
        leaf = SelectCustom("Split", action=Action.log("split"), required_fields=["heat", "energy"])

        resolution = InputResolver(runner).resolve(
            leaf, CustomResponse(payload={"heat": 2, "energy": 1})
        )

        assert resolution.value == {"heat": 2, "energy": 1}

    def test_missing_field_rejected(self, runner):
        leaf = SelectCustom("Split", required_fields=["heat", "energy"])

        with pytest.raises(InvalidPayloadError, match="energy"):
            InputResolver(runner).resolve(leaf, CustomResponse(payload={"heat": 2}))

        assert runner.calls == []


class TestFollowUps:
    def test_follow_up_returned(self):
        """An input produced by the leaf action becomes the follow-up."""
        follow = SelectAmount("How many?", max_amount=3)
        runner = RecordingRunner(follow_ups={"chose 0": follow})

        resolution = InputResolver(runner).resolve(logging_or(2), or_response(0, OptionResponse()))

        assert resolution.follow_up is follow

    def test_follow_ups_combined(self):
        """Follow-ups from the leaf and the And action are merged into one And."""
        first = SelectOption("again")
        second = SelectOption("more")
        runner = RecordingRunner(follow_ups={"b": first, "done": second})
        tree = AndOptions.of(
            "Both",
            SelectOption("a", action=Action.log("a")),
            SelectOption("b", action=Action.log("b")),
            action=Action.log("done"),
        )
        resolver = InputResolver(runner)
        resolver.resolve(tree, and_response(0, OptionResponse()))

        resolution = resolver.resolve(tree, and_response(1, OptionResponse()))

        assert isinstance(resolution.follow_up, AndOptions)
        assert resolution.follow_up.options == [first, second]
