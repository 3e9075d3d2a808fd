import sys
import textwrap

import pytest

from rhost.rhost_bridge import invoke
from rhost.rhost_datatypes import ErrorKind, EvaluatorLoadError, Failure, Success
from rhost.rhost_evaluator import EvaluatorHandle, ProcessEvaluator, process_loader

FAKE_EVALUATOR = textwrap.dedent("""
    import json, sys, time
    src = sys.stdin.read()
    if "boom" in src:
        print(json.dumps({"error": "boom happened", "output": "partial"}))
    elif "garbage" in src:
        print("this is not json")
    elif "silent" in src:
        sys.stderr.write("crashed hard")
        sys.exit(3)
    elif "sleep" in src:
        time.sleep(5)
    else:
        print(json.dumps({"output": "echo:" + src, "value": "[1] 1", "json": "[1, 2]"}))
""")


@pytest.fixture
def fake_command(tmp_path):
    script = tmp_path / "fake_smallr.py"
    script.write_text(FAKE_EVALUATOR, encoding="utf-8")
    return [sys.executable, str(script)]


@pytest.mark.asyncio
async def test_process_success(fake_command):
    handle = EvaluatorHandle.ready(ProcessEvaluator(fake_command))
    res = await invoke(handle, "x <- 1\nx")
    assert res == Success(console_text="echo:x <- 1\nx", printed_value="[1] 1", structured_value=[1, 2])


@pytest.mark.asyncio
async def test_process_error(fake_command):
    res = await invoke(EvaluatorHandle.ready(ProcessEvaluator(fake_command)), "boom")
    assert isinstance(res, Failure)
    assert res.kind == ErrorKind.EVALUATION
    assert "boom happened" in res.message and "partial" in res.message


@pytest.mark.asyncio
async def test_process_non_json_output_is_malformed(fake_command):
    res = await invoke(EvaluatorHandle.ready(ProcessEvaluator(fake_command)), "garbage")
    assert isinstance(res, Failure)
    assert res.kind == ErrorKind.MALFORMED_RESULT


@pytest.mark.asyncio
async def test_process_crash_reports_stderr(fake_command):
    res = await invoke(EvaluatorHandle.ready(ProcessEvaluator(fake_command)), "silent")
    assert isinstance(res, Failure)
    assert res.message == "crashed hard"


@pytest.mark.asyncio
async def test_process_timeout(fake_command):
    evaluator = ProcessEvaluator(fake_command, timeout=0.5)
    res = await invoke(EvaluatorHandle.ready(evaluator), "sleep")
    assert isinstance(res, Failure)
    assert res.kind == ErrorKind.EVALUATION
    assert "timed out" in res.message


@pytest.mark.asyncio
async def test_process_loader_probes_and_loads(fake_command):
    handle = EvaluatorHandle(process_loader(fake_command))
    await handle.load()
    assert handle.is_available
    assert isinstance(handle.entry_point, ProcessEvaluator)


@pytest.mark.asyncio
async def test_process_loader_missing_executable():
    handle = EvaluatorHandle(process_loader(["definitely-not-a-smallr-binary-xyz"]))
    with pytest.raises(EvaluatorLoadError):
        await handle.load()
    assert not handle.is_available


def test_empty_command_rejected():
    with pytest.raises(EvaluatorLoadError):
        ProcessEvaluator([])
