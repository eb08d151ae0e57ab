from __future__ import annotations

import asyncio
import shlex
import sys

import pytest

from listmerge import pipeline
from listmerge.aggregator import AggregateResult, FailureReport


@pytest.fixture
def sources_file(tmp_path):
    path = tmp_path / "links.txt"
    path.write_text("https://a.example/list\nhttps://b.example/list\n", encoding="utf-8")
    return path


@pytest.fixture
def fake_aggregate(monkeypatch):
    calls = {}

    def install(result: AggregateResult):
        async def fake(urls, **kwargs):
            calls["urls"] = urls
            calls.update(kwargs)
            return result

        monkeypatch.setattr(pipeline, "aggregate", fake)
        return calls

    return install


def test_main_writes_sorted_artifact(tmp_path, sources_file, fake_aggregate) -> None:
    calls = fake_aggregate(AggregateResult(
        {"c.com", "a.com", "b.com"},
        [FailureReport("https://b.example/list", "HTTP 503")],
        1,
    ))
    output = tmp_path / "ads_list.txt"

    code = pipeline.main([
        "--sources", str(sources_file),
        "--output", str(output),
        "--no-relocate",
        "--concurrency", "4",
        "--timeout", "7",
    ])

    assert code == pipeline.EXIT_OK
    assert output.read_text(encoding="utf-8") == "a.com\nb.com\nc.com\n"
    assert calls["urls"] == ["https://a.example/list", "https://b.example/list"]
    assert calls["concurrency"] == 4
    assert calls["timeout"] == 7


def test_main_zero_timeout_means_no_timeout(tmp_path, sources_file, fake_aggregate) -> None:
    calls = fake_aggregate(AggregateResult(set(), [], 0))
    pipeline.main(["--sources", str(sources_file), "--output", str(tmp_path / "o.txt"), "--no-relocate", "--timeout", "0"])
    assert calls["timeout"] is None


def test_all_sources_failing_still_publishes_empty_list(tmp_path, sources_file, fake_aggregate) -> None:
    fake_aggregate(AggregateResult(set(), [
        FailureReport("https://a.example/list", "Timeout"),
        FailureReport("https://b.example/list", "HTTP 500"),
    ], 0))
    output = tmp_path / "ads_list.txt"

    code = pipeline.main(["--sources", str(sources_file), "--output", str(output), "--no-relocate"])

    assert code == pipeline.EXIT_OK
    assert output.read_text(encoding="utf-8") == ""


def test_main_missing_sources_file(tmp_path, fake_aggregate) -> None:
    calls = fake_aggregate(AggregateResult(set(), [], 0))
    code = pipeline.main(["--sources", str(tmp_path / "missing.txt"), "--no-relocate"])
    assert code == pipeline.EXIT_FAILED
    assert "urls" not in calls


def test_main_publish_failure_is_fatal(tmp_path, sources_file, fake_aggregate) -> None:
    fake_aggregate(AggregateResult({"a.com"}, [], 2))
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")

    code = pipeline.main(["--sources", str(sources_file), "--output", str(blocker / "ads_list.txt"), "--no-relocate"])

    assert code == pipeline.EXIT_FAILED


def test_main_refresh_failure_keeps_artifact(tmp_path, sources_file, fake_aggregate) -> None:
    fake_aggregate(AggregateResult({"a.com"}, [], 2))
    output = tmp_path / "ads_list.txt"
    command = f"{shlex.quote(sys.executable)} -c 'import sys; sys.exit(1)'"

    code = pipeline.main([
        "--sources", str(sources_file),
        "--output", str(output),
        "--no-relocate",
        "--refresh",
        "--refresh-command", command,
    ])

    assert code == pipeline.EXIT_REFRESH_FAILED
    assert output.read_text(encoding="utf-8") == "a.com\n"


def test_main_refresh_success(tmp_path, sources_file, fake_aggregate) -> None:
    fake_aggregate(AggregateResult({"a.com"}, [], 2))
    command = f"{shlex.quote(sys.executable)} -c pass"

    code = pipeline.main([
        "--sources", str(sources_file),
        "--output", str(tmp_path / "ads_list.txt"),
        "--no-relocate",
        "--refresh",
        "--refresh-command", command,
    ])

    assert code == pipeline.EXIT_OK


def test_run_pipeline_relocates_on_linux(tmp_path, monkeypatch, fake_aggregate) -> None:
    monkeypatch.setattr("listmerge.publisher.platform.system", lambda: "Linux")
    fake_aggregate(AggregateResult({"b.com", "a.com"}, [], 1))
    publish_dir = tmp_path / "html"

    stats = asyncio.run(pipeline.run_pipeline(
        ["https://a.example/list"],
        tmp_path / "ads_list.txt",
        publish_dir=publish_dir,
    ))

    assert stats["artifact"] == publish_dir / "ads_list.txt"
    assert stats["entries"] == 2
    assert (publish_dir / "ads_list.txt").read_text(encoding="utf-8") == "a.com\nb.com\n"
    assert not (tmp_path / "ads_list.txt").exists()


def test_run_pipeline_keeps_artifact_off_linux(tmp_path, monkeypatch, fake_aggregate) -> None:
    monkeypatch.setattr("listmerge.publisher.platform.system", lambda: "Windows")
    fake_aggregate(AggregateResult({"a.com"}, [], 1))

    stats = asyncio.run(pipeline.run_pipeline(["u"], tmp_path / "ads_list.txt", publish_dir=tmp_path / "html"))

    assert stats["artifact"] == tmp_path / "ads_list.txt"
    assert (tmp_path / "ads_list.txt").exists()


@pytest.mark.parametrize("flag", ["--concurrency", "--timeout"])
def test_negative_limits_are_rejected(flag) -> None:
    with pytest.raises(SystemExit) as excinfo:
        pipeline.parse_arguments([flag, "-1"])
    assert excinfo.value.code == 2
