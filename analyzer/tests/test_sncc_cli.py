#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

import sncc
from snc_context import LogLevel
from snc_cycle_guard import CyclePolicy

FOO_DOC = {
    "file": "main.ts",
    "text": "const data: Foo = {NonNullableString: undefined};\n",
    "types": {
        "Foo": {"properties": {"NonNullableString": "string", "opt": {"type": "string", "optional": True}}},
        "Node": {"properties": {"next": "Node?", "value": "number"}},
    },
    "sites": [{
        "kind": "declaration",
        "name": "data",
        "target": "Foo",
        "source": {"properties": {"NonNullableString": "undefined"}},
        "span": {"start": 18, "length": 30},
    }],
}


def _patch_handlers(monkeypatch):
    calls = []

    def _mk_handler(name):
        def _handler(args):
            calls.append((name, args))
            return 0

        return _handler

    monkeypatch.setattr(sncc, "cmd_check", _mk_handler("check"))
    monkeypatch.setattr(sncc, "cmd_types", _mk_handler("types"))
    monkeypatch.setattr(sncc, "cmd_compare", _mk_handler("compare"))
    return calls


def _run_main(argv):
    with pytest.raises(SystemExit) as exc:
        sncc.main(argv)
    return exc.value.code


@pytest.fixture(autouse=True)
def _no_policy_env(monkeypatch):
    monkeypatch.delenv("SNC_CYCLE_POLICY", raising=False)


# ============================================================================
# Argument parsing
# ============================================================================


@pytest.mark.parametrize("command, name", [("check", "check"), ("analyze", "check"), ("types", "types"),
                                           ("type", "types")])
def test_commands_and_aliases(monkeypatch, command, name):
    calls = _patch_handlers(monkeypatch)

    rc = _run_main([command, "graph.json"])

    assert rc == 0
    assert [c[0] for c in calls] == [name]
    assert calls[0][1].file == "graph.json"


def test_compare_takes_two_type_references(monkeypatch):
    calls = _patch_handlers(monkeypatch)

    rc = _run_main(["compare", "graph.json", "Foo", "Foo | undefined"])

    assert rc == 0
    _, args = calls[0]
    assert (args.file, args.target, args.source) == ("graph.json", "Foo", "Foo | undefined")


def test_command_is_required(monkeypatch):
    calls = _patch_handlers(monkeypatch)
    assert _run_main([]) == 2
    assert calls == []


def test_unknown_cycle_policy_rejected(monkeypatch):
    calls = _patch_handlers(monkeypatch)
    assert _run_main(["--cycle-policy", "forever", "check", "graph.json"]) == 2
    assert calls == []


@pytest.mark.parametrize(
    "argv, level",
    [
        (["check", "g.json"], LogLevel.ERROR),
        (["-v", "check", "g.json"], LogLevel.INFO),
        (["-vvv", "check", "g.json"], LogLevel.DEBUG),
    ],
)
def test_verbosity_maps_to_log_level(monkeypatch, argv, level):
    calls = _patch_handlers(monkeypatch)
    _run_main(argv)
    context = sncc.build_analysis_context(calls[0][1])
    assert context.log_level == level


def test_context_from_flags(monkeypatch):
    calls = _patch_handlers(monkeypatch)
    _run_main(["-l", "--cycle-policy", "memo", "check", "--no-host-errors", "g.json"])
    context = sncc.build_analysis_context(calls[0][1])
    assert context.cycle_policy is CyclePolicy.MEMO
    assert context.log_rich_format
    assert not context.forward_host_errors


def test_cycle_policy_from_environment(monkeypatch):
    calls = _patch_handlers(monkeypatch)
    monkeypatch.setenv("SNC_CYCLE_POLICY", "shared")
    _run_main(["check", "g.json"])
    assert sncc.build_analysis_context(calls[0][1]).cycle_policy is CyclePolicy.SHARED


def test_invalid_cycle_policy_in_environment(monkeypatch, capsys):
    calls = _patch_handlers(monkeypatch)
    monkeypatch.setenv("SNC_CYCLE_POLICY", "bogus")

    rc = _run_main(["check", "g.json"])

    assert rc == 1
    assert calls == []
    assert "unknown cycle policy 'bogus'" in capsys.readouterr().err


def test_flag_wins_over_invalid_environment(monkeypatch):
    calls = _patch_handlers(monkeypatch)
    monkeypatch.setenv("SNC_CYCLE_POLICY", "bogus")
    assert _run_main(["--cycle-policy", "memo", "check", "g.json"]) == 0
    assert sncc.build_analysis_context(calls[0][1]).cycle_policy is CyclePolicy.MEMO


def test_flag_overrides_environment(monkeypatch):
    calls = _patch_handlers(monkeypatch)
    monkeypatch.setenv("SNC_CYCLE_POLICY", "shared")
    _run_main(["--cycle-policy", "path", "check", "g.json"])
    assert sncc.build_analysis_context(calls[0][1]).cycle_policy is CyclePolicy.PATH


# ============================================================================
# Commands
# ============================================================================


def test_check_reports_finding_with_snippet(write_graph, capsys):
    path = write_graph(FOO_DOC)

    rc = _run_main(["check", str(path)])

    assert rc == 1
    err = capsys.readouterr().err
    assert "[SNC-0010]" in err
    assert "main.ts:1:19: error:" in err
    assert "    1 | const data: Foo = {NonNullableString: undefined};" in err
    assert "^" * 30 in err


def test_check_clean_document(write_graph, capsys):
    path = write_graph({"types": {"Foo": {"properties": {"n": "number"}}},
                        "sites": [{"target": "Foo", "source": "Foo"}]})
    assert _run_main(["check", str(path)]) == 0
    assert capsys.readouterr().err == ""


def test_check_missing_file(tmp_path, capsys):
    rc = _run_main(["check", str(tmp_path / "missing.json")])
    assert rc == 1
    assert "[DRV-0010]" in capsys.readouterr().err


def test_check_invalid_document(write_graph, capsys):
    path = write_graph('{"types": {"Foo": {"properties": {"x": "Missing"}}}}')
    assert _run_main(["check", str(path)]) == 1
    assert "[GRF-0020] unknown type 'Missing'" in capsys.readouterr().err


def test_types_dump(write_graph, capsys):
    path = write_graph(FOO_DOC)

    rc = _run_main(["types", str(path)])

    assert rc == 0
    out = capsys.readouterr().out
    lines = out.splitlines()
    assert lines[0] == "=== Types for 'main.ts' ==="
    assert "    Foo = Foo {NonNullableString: string; opt: string | undefined}" in lines
    assert any(line.startswith("    Node = Node {next: ") for line in lines)


def test_types_dump_empty(write_graph, capsys):
    path = write_graph({})
    assert _run_main(["types", str(path)]) == 0
    assert "    <none>" in capsys.readouterr().out


@pytest.mark.parametrize(
    "target, source, rc, expected",
    [
        ("Foo", "Foo", 0, "compatible: 'Foo' -> 'Foo'"),
        ("Foo?", "undefined", 0, "compatible: 'undefined' -> 'Foo?'"),
        ("number", "number | undefined", 1, "unsafe: 'number | undefined' -> 'number': value may be null or undefined"),
        ("Foo", "Node", 1, "unsafe: 'Node' -> 'Foo': required property is missing: 'NonNullableString'"),
    ],
)
def test_compare_verdicts(write_graph, capsys, target, source, rc, expected):
    path = write_graph(FOO_DOC)
    assert _run_main(["compare", str(path), target, source]) == rc
    assert capsys.readouterr().out.strip() == expected


def test_compare_unknown_type(write_graph, capsys):
    path = write_graph(FOO_DOC)
    assert _run_main(["compare", str(path), "Foo", "Bar"]) == 1
    assert "[GRF-0020] unknown type 'Bar'" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [["types"], ["compare"]])
def test_inspection_commands_report_undecodable_file(tmp_path, capsys, argv):
    path = tmp_path / "bin.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    extra = ["Foo", "Foo"] if argv == ["compare"] else []

    rc = _run_main(argv + [str(path)] + extra)

    assert rc == 1
    assert "[DRV-0020]" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [["types"], ["compare"]])
def test_inspection_commands_report_missing_file(tmp_path, capsys, argv):
    extra = ["Foo", "Foo"] if argv == ["compare"] else []
    assert _run_main(argv + [str(tmp_path / "missing.json")] + extra) == 1
    assert "[DRV-0010]" in capsys.readouterr().err
