from __future__ import annotations

from typing import Any

import pytest

from conftest import EXIT, FakeChannel, ScriptedStep
from dialogtree import EndStep, Ending, InvalidTreeError, Rejection, Runner, StepNode, TextMessage, Visual
from dialogtree.demo import AgeData, build_age_tree


async def _true(data: Any) -> bool:
    return True


async def _false(data: Any) -> bool:
    return False


async def _keep(message: Any, data: Any) -> Any:
    return data


def _step(*scripts: list[Any], transform: Any = _keep, **kwargs: Any) -> ScriptedStep:
    return ScriptedStep(Visual("v"), transform, scripts=scripts, **kwargs)


def _node(step: Any = None, condition: Any = None) -> StepNode:
    return StepNode(step or _step(), condition)


class TestValidate:
    def test_chain_without_conditions_is_valid(self) -> None:
        root = _node().add_child(_node().add_child(_node()))

        assert Runner.valid(root) is True

    def test_missing_condition_deep_in_the_tree_is_invalid(self) -> None:
        bad = _node().set_children([_node(), _node()])
        root = _node().add_child(bad)

        assert Runner.valid(root) is False
        assert Runner.find_invalid(root) is bad

    def test_all_branches_with_conditions_are_valid(self) -> None:
        branch = _node(condition=_true).set_children([_node(condition=_true), _node(condition=_true)])
        root = _node().add_child(_node().set_children([_node(condition=_false), branch]))

        assert Runner.valid(root) is True

    def test_cycles_do_not_recurse_forever(self) -> None:
        root = _node()
        child = _node()
        root.add_child(child)
        child.add_child(root)

        assert Runner.valid(root) is True

    @pytest.mark.asyncio
    async def test_run_refuses_invalid_tree_before_sending(self) -> None:
        channel = FakeChannel()
        root = _node().set_children([_node(condition=_true), _node()])

        with pytest.raises(InvalidTreeError) as excinfo:
            await Runner({}).run(root, channel)

        assert excinfo.value.node is root
        assert channel.sent == []


class TestExecute:
    @pytest.mark.asyncio
    async def test_follows_the_passing_branches(self) -> None:
        root_step = _step(["go"])
        skipped = _step(["never"])
        taken = _step(["go"])
        middle = _step(["go"])
        leaf_taken = ScriptedStep(Visual("leaf"))
        leaf_skipped = ScriptedStep(Visual("leaf"))
        steps = [root_step, skipped, taken, middle, leaf_taken, leaf_skipped]

        middle_node = _node(middle).set_children([_node(leaf_taken, _true), _node(leaf_skipped, _false)])
        root = _node(root_step).set_children([_node(skipped, _false), _node(taken, _true).add_child(middle_node)])
        runner = Runner({})

        await runner.execute(root, FakeChannel())

        assert runner.indexes_of(steps) == [0, -1, 1, 2, 3, -1]
        assert skipped.collectors == []
        assert leaf_taken.collectors == []

    @pytest.mark.asyncio
    async def test_collects_on_a_single_step_without_children(self) -> None:
        step = _step(["only"], transform=lambda m, d: m.content)
        runner = Runner("")

        assert await runner.execute(_node(step), FakeChannel()) == "only"
        assert len(step.collectors) == 1
        assert runner.ending == Ending.ACCEPTED

    @pytest.mark.asyncio
    async def test_sends_next_visual_with_updated_data(self) -> None:
        channel = FakeChannel()
        first = ScriptedStep(Visual("first"), lambda m, d: {"name": m.content}, scripts=[["Ann"]])
        second = ScriptedStep(lambda data: Visual(f"hi {data['name']}"))

        await Runner({}).run(_node(first).add_child(_node(second)), channel)

        assert channel.texts == ["first", "hi Ann"]

    @pytest.mark.asyncio
    async def test_end_step_stops_even_with_children(self) -> None:
        channel = FakeChannel()
        end = EndStep(Visual("goodbye"), _keep)
        after = _step(["x"])
        runner = Runner({"k": 1})

        data = await runner.run(_node(end).add_child(_node(after)), channel)

        assert data == {"k": 1}
        assert runner.indexes_of([end, after]) == [0, -1]
        assert channel.texts == ["goodbye"]
        assert runner.ending == Ending.ENDED
        assert not runner.terminated

    @pytest.mark.asyncio
    async def test_exit_ends_the_run_with_last_data(self) -> None:
        channel = FakeChannel()
        first = _step(["a"], transform=lambda m, d: [*d, m.content])
        second = _step([EXIT], transform=lambda m, d: [*d, m.content])
        third = _step(["c"])
        runner = Runner([])

        data = await runner.run(_node(first).add_child(_node(second).add_child(_node(third))), channel)

        assert data == ["a"]
        assert runner.indexes_of([first, second, third]) == [0, 1, -1]
        assert runner.ending == Ending.EXITED
        assert runner.terminated is True
        assert channel.texts[-1] == second.settings.exit_text

    @pytest.mark.asyncio
    async def test_inactivity_ends_the_run(self) -> None:
        first = _step(duration=0.02)
        second = _step(["b"])
        runner = Runner({})

        await runner.run(_node(first).add_child(_node(second)), FakeChannel())

        assert runner.indexes_of([first, second]) == [0, -1]
        assert runner.ending == Ending.INACTIVE

    @pytest.mark.asyncio
    async def test_transform_error_propagates(self) -> None:
        async def explode(message: Any, data: Any) -> Any:
            raise ValueError("bad state")

        first = _step(["a"])
        second = _step(["b"], transform=explode)
        runner = Runner({})

        with pytest.raises(ValueError, match="bad state"):
            await runner.run(_node(first).add_child(_node(second)), FakeChannel())
        assert runner.indexes_of([first, second]) == [0, -1]

    @pytest.mark.asyncio
    async def test_send_failure_propagates(self) -> None:
        with pytest.raises(ConnectionError):
            await Runner({}).run(_node(), FakeChannel(ConnectionError("down")))

    @pytest.mark.asyncio
    async def test_shared_step_under_two_parents(self) -> None:
        shared = ScriptedStep(Visual("shared end"))
        left = _step(["l"], transform=lambda m, d: "left")
        branch_left = _node(left, lambda d: d == "start").add_child(_node(shared))
        branch_right = _node(_step(["r"]), lambda d: d != "start").add_child(_node(shared))
        root = _node(_step(["go"])).set_children([branch_left, branch_right])
        runner = Runner("start")

        assert await runner.run(root, FakeChannel()) == "left"
        assert runner.index_of(shared) == 2
        assert [stored.message.content for stored in shared.messages] == ["shared end"]


class TestRunFirst:
    @pytest.mark.asyncio
    async def test_runs_first_matching_root(self) -> None:
        wrong = _step(["x"])
        right = _step(["y"], transform=lambda m, d: {**d, "picked": m.content})
        runner = Runner({"kind": "b"})
        roots = [_node(wrong, lambda d: d["kind"] == "a"), _node(right, lambda d: d["kind"] == "b")]

        assert await runner.run_first(roots, FakeChannel()) == {"kind": "b", "picked": "y"}
        assert runner.indexes_of([wrong, right]) == [-1, 0]

    @pytest.mark.asyncio
    async def test_returns_initial_data_without_match(self) -> None:
        channel = FakeChannel()
        runner = Runner({"kind": "c"})

        assert await runner.run_first([_node(condition=_false)], channel) == {"kind": "c"}
        assert channel.sent == []
        assert runner.ran == []


class _AgeStep(ScriptedStep):
    answers: dict[str, list[Any]] = {}

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.scripts = [self.answers.get(self.name, [])]


def _age_steps(root: StepNode) -> dict[str, Any]:
    age = root.children[0]
    too_old, too_young = age.children
    return {"name": root.step, "age": age.step, "too_old": too_old.step, "too_young": too_young.step}


class TestAgeConversation:
    @pytest.mark.asyncio
    async def test_old_enough(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(_AgeStep, "answers", {"ask name": ["George"], "ask age": ["30"]})
        root = build_age_tree(_AgeStep)
        steps = _age_steps(root)
        channel = FakeChannel()
        runner = Runner(AgeData())

        data = await runner.run(root, channel)

        assert data == AgeData(name="George", age=30)
        assert len(runner.ran) == 3
        assert runner.ran[-1] is steps["too_old"]
        assert runner.indexes_of([steps["too_old"], steps["too_young"]]) == [2, -1]
        assert channel.texts == [
            "What's your name?",
            "How old are you, George?",
            "Welcome George, at 30 you can freely drink.",
        ]

    @pytest.mark.asyncio
    async def test_too_young_after_a_rejection(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(_AgeStep, "answers", {"ask name": ["George"], "ask age": ["fifteen", "15"]})
        root = build_age_tree(_AgeStep)
        steps = _age_steps(root)
        channel = FakeChannel()
        runner = Runner(AgeData())

        data = await runner.run(root, channel)

        assert data == AgeData(name="George", age=15)
        assert runner.indexes_of([steps["too_old"], steps["too_young"]]) == [-1, 2]
        assert "That's not a number!" in channel.texts
        assert [(m.message.content, m.from_user) for m in steps["age"].messages] == [
            ("How old are you, George?", False),
            ("fifteen", True),
            ("That's not a number!", False),
            ("15", True),
        ]

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self) -> None:
        from dialogtree.demo import ask_name

        with pytest.raises(Rejection):
            await ask_name(TextMessage("   "), AgeData())
