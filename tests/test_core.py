import pytest

from fakes import FakeElement, FakePage
from flow_agent.config import Settings
from flow_agent.core import FlowRunner, run_agent_guided, run_deterministic
from flow_agent.errors import FlowTimeoutError, LocateError, ParseError, TransportError
from flow_agent.models import MASK, Action, Decision
from flow_agent.parser import parse_plan
from flow_agent.planner import RuleBasedDecider
from flow_agent.validator import validate


@pytest.fixture
def page():
    return FakePage(
        [
            FakeElement(role="button", name="Sign in"),
            FakeElement(label="Password"),
            FakeElement(role="link", name="X"),
        ],
        url="https://app.test/login",
        title="Login",
        snapshot_lines=['[Button: "Sign in"]', '[Input: "Password" (password)]'],
    )


@pytest.fixture
def runner(fast_settings):
    return FlowRunner(fast_settings)


def scripted(*decisions):
    """按顺序返回决策，同时记录每次收到的历史长度"""
    queue = list(decisions)
    seen = []

    async def decide(snapshot, flow_text, history):
        seen.append((snapshot, flow_text, len(history)))
        return queue.pop(0)

    decide.seen = seen
    return decide


@pytest.mark.asyncio
async def test_deterministic_run_records_history(runner, page):
    plan = (
        Action("navigate", value="https://app.test/login"),
        Action("fill", target="Password", value="hunter2"),
        Action("click", target="Sign in"),
    )

    result = await runner.run(page, plan)

    assert result.success is True
    assert result.steps == 3
    assert [h.action for h in result.history] == ["navigate", "fill", "click"]
    assert [h.step for h in result.history] == [1, 2, 3]
    assert result.history[1].value == MASK
    assert result.history[0].value == "https://app.test/login"
    stamps = [h.timestamp_ms for h in result.history]
    assert stamps == sorted(stamps)
    assert result.duration_ms >= stamps[-1]
    assert ("fill", "Password", "hunter2") in page.actions


@pytest.mark.asyncio
async def test_deterministic_accepts_dicts(fast_settings, page):
    result = await run_deterministic(page, [{"action": "click", "target": "Sign in"}], settings=fast_settings)

    assert result.steps == 1
    assert result.history[0].url == "https://app.test/login"


@pytest.mark.asyncio
async def test_deterministic_done_ends_walk(runner, page):
    plan = (Action("click", target="Sign in"), Action("done"), Action("click", target="X"))

    result = await runner.run(page, plan)

    assert result.steps == 1
    assert page.actions == [("click", "Sign in", None)]


@pytest.mark.asyncio
async def test_deterministic_failure_carries_context(runner, page):
    plan = (Action("click", target="Sign in"), Action("click", target="Missing thing"))

    with pytest.raises(LocateError) as excinfo:
        await runner.run(page, plan)

    context = excinfo.value.context
    assert context.step == 2
    assert context.url == "https://app.test/login"
    assert context.title == "Login"
    assert [h.target for h in context.history] == ["Sign in"]


@pytest.mark.asyncio
async def test_instructions_with_unknown_rejected_before_execution(runner, page):
    with pytest.raises(ParseError):
        await runner.run_instructions(page, ["click Sign in", "teleport home"])

    assert page.actions == []


@pytest.mark.asyncio
async def test_instructions_with_variables(runner, page):
    result = await runner.run_instructions(page, ["fill Password {pw}", "click Sign in"], {"pw": "s3cret"})

    assert result.steps == 2
    assert ("fill", "Password", "s3cret") in page.actions
    assert result.history[0].value == MASK


@pytest.mark.asyncio
async def test_agent_done_is_not_counted(runner, page):
    decide = scripted(Decision("wait", value="1"), Decision("click", target="X"), Decision("done"))

    result = await runner.run_agent(page, "click X after waiting", decide)

    assert result.steps == 2
    assert len(result.history) == 2
    assert [h.action for h in result.history] == ["wait", "click"]
    assert [seen[2] for seen in decide.seen] == [0, 1, 2]
    assert decide.seen[0][0] == '[Button: "Sign in"]\n[Input: "Password" (password)]'
    assert result.history[1].url == "https://app.test/login"


@pytest.mark.asyncio
async def test_agent_without_done_hits_ceiling(runner, page):
    calls = []

    def decide(snapshot, flow_text, history):
        calls.append(len(history))
        return {"action": "wait", "value": "1"}

    with pytest.raises(FlowTimeoutError) as excinfo:
        await runner.run_agent(page, "loop forever", decide)

    message = str(excinfo.value).lower()
    assert "maximum steps" in message
    assert "possible infinite loop" in message
    assert len(calls) == 50
    assert len(excinfo.value.context.history) == 50


@pytest.mark.asyncio
async def test_agent_masks_fill_values(runner, page):
    decide = scripted(
        Decision("fill", target="Password", value="hunter2"),
        Decision("navigate", value="https://app.test/home"),
        Decision("done"),
    )

    result = await runner.run_agent(page, "log in", decide)

    assert result.history[0].value == MASK
    assert result.history[1].value == "https://app.test/home"


@pytest.mark.asyncio
async def test_agent_can_mask_every_value(fast_timings, page):
    runner = FlowRunner(Settings(timings=fast_timings, mask_all_agent_values=True))
    decide = scripted(Decision("navigate", value="https://app.test/home"), Decision("click", target="X"),
                      Decision("done"))

    result = await runner.run_agent(page, "go home", decide)

    assert result.history[0].value == MASK
    assert result.history[1].value is None


@pytest.mark.asyncio
async def test_decision_failure_becomes_transport_error(runner, page):
    async def decide(snapshot, flow_text, history):
        raise ConnectionError("agent unreachable")

    with pytest.raises(TransportError) as excinfo:
        await runner.run_agent(page, "anything", decide)

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert excinfo.value.context.snapshot.startswith("[Button")
    assert excinfo.value.context.url == "https://app.test/login"


@pytest.mark.asyncio
async def test_malformed_decision(runner, page):
    with pytest.raises(TransportError, match="action"):
        await runner.run_agent(page, "anything", scripted({"target": "Sign in"}))


@pytest.mark.asyncio
async def test_step_failure_keeps_history(runner, page):
    decide = scripted(Decision("click", target="Sign in"), Decision("click", target="Ghost"))

    with pytest.raises(LocateError) as excinfo:
        await runner.run_agent(page, "click ghost", decide)

    assert [h.target for h in excinfo.value.context.history] == ["Sign in"]
    assert excinfo.value.context.step == 2


@pytest.mark.asyncio
async def test_rule_based_agent_runs_every_clause(fast_settings):
    page = FakePage(url="about:blank")
    flow = "navigate to a.test then navigate to b.test"

    result = await run_agent_guided(page, flow, RuleBasedDecider(), settings=fast_settings)

    assert [h.value for h in result.history] == ["https://a.test", "https://b.test"]
    assert validate(parse_plan(flow), result.history).success
