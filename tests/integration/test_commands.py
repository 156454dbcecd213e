"""
Integration tests for the command surface and CLI.

Tests cover:
- status before and after a run, including integrity reporting
- rollback confirmation, restore, and re-stamping of run state
- audit listings, statistics and full chains
- trace by id and by notation symbol
- CLI dispatch and exit codes
"""

import asyncio
import json
import sys

import pytest

from soulsynth import __version__, cli
from soulsynth.commands import audit, rollback, status, synthesize, trace
from soulsynth.models import Dimension

pytestmark = pytest.mark.integration


@pytest.fixture
def signals_file(write_signals, make_signal):
    signals = [
        make_signal("h1", "Tells hard truths kindly", vector=(1.0, 0.0), file="memory/a.md", line=3),
        make_signal("h2", "Honest about uncertainty", vector=(0.98, 0.1), file="memory/b.md", line=7),
        make_signal("h3", "Will not flatter", vector=(0.99, 0.05), file="memory/a.md", line=9),
        make_signal(
            "v1", "Speaks in short sentences", Dimension.VOICE_PRESENCE,
            vector=(0.0, 1.0), file="memory/c.md", line=2,
        ),
    ]
    return write_signals(signals)


@pytest.fixture
def synthesized(workspace, integration_config, write_memory, signals_file, fake_collaborator):
    """Workspace after one successful run with math notation."""
    write_memory("a.md", 500)
    result = asyncio.run(synthesize(
        workspace.root,
        signals_file=signals_file,
        fmt="math",
        config=integration_config,
        collaborator=fake_collaborator,
    ))
    assert result["success"], result
    return workspace


# ============================================================================
# synthesize
# ============================================================================


class TestSynthesizeCommand:
    @pytest.mark.asyncio
    async def test_reports_skip_below_threshold(self, workspace, config, write_memory):
        write_memory("a.md", 10)

        result = await synthesize(workspace.root, config=config)

        assert result["success"]
        assert result["data"]["ran"] is False
        assert "Below threshold" in result["data"]["skipped_reason"]

    @pytest.mark.asyncio
    async def test_unknown_format_fails_cleanly(self, workspace, config):
        result = await synthesize(workspace.root, force=True, fmt="klingon", config=config)

        assert result["success"] is False
        assert "klingon" in result["error"]

    @pytest.mark.asyncio
    async def test_missing_signals_file(self, workspace, config, tmp_path):
        result = await synthesize(workspace.root, signals_file=tmp_path / "none.json", config=config)

        assert result["success"] is False
        assert "not found" in result["error"]

    def test_run_summary(self, synthesized):
        document = synthesized.document_path.read_text(encoding="utf-8")

        assert "## Core (N>=5)" in document
        assert "誠: honesty > comfort" in document


# ============================================================================
# status
# ============================================================================


class TestStatus:
    def test_fresh_workspace(self, workspace, config, write_memory):
        write_memory("a.md", 2500)

        result = status(workspace.root, config=config)

        data = result["data"]
        assert result["success"]
        assert data["last_run_at"] is None
        assert data["run_count"] == 0
        assert data["pending_size"] == 2500
        assert data["ready"] is True
        assert data["integrity"] == "ok"

    def test_after_run(self, synthesized, integration_config, write_memory):
        write_memory("d.md", 40)
        write_memory("a.md", 520)

        result = status(synthesized.root, verbose=True, config=integration_config)

        data = result["data"]
        assert data["run_count"] == 1
        assert data["pending_size"] == 60
        assert data["ready"] is False
        assert data["counts"] == {"signals": 4, "principles": 2, "axioms": 1, "backups": 0}
        assert data["new_files"] == ["d.md"]
        assert data["modified_files"] == ["a.md"]
        assert data["coverage"]["honesty-framework"] == 1
        assert data["last_metrics"]["signal_count"] == 4

    def test_reports_tampered_document(self, synthesized, integration_config):
        synthesized.document_path.write_text("# edited by hand\n", encoding="utf-8")

        result = status(synthesized.root, config=integration_config)

        assert result["success"]
        assert result["data"]["integrity"] == "mismatch"
        assert any("rollback" in w for w in result["warnings"])


# ============================================================================
# rollback
# ============================================================================


class TestRollback:
    def test_empty_history(self, workspace, config):
        result = rollback(workspace.root, force=True, config=config)

        assert result["success"] is False
        assert "No backups" in result["error"]

    def test_unknown_backup(self, synthesized, integration_config):
        result = rollback(synthesized.root, backup_id="2020-01-01T00-00-00-000000Z", force=True,
                          config=integration_config)

        assert result["success"] is False
        assert "not found" in result["error"]

    @pytest.mark.asyncio
    async def test_restore_requires_force_then_restamps_state(
        self, synthesized, integration_config, write_memory, signals_file, fake_collaborator
    ):
        first = synthesized.document_path.read_text(encoding="utf-8")
        write_memory("b.md", 500)
        second = await synthesize(
            synthesized.root, signals_file=signals_file, fmt="native",
            config=integration_config, collaborator=fake_collaborator,
        )
        backup_id = second["data"]["backup_id"]

        listed = rollback(synthesized.root, list_only=True, config=integration_config)
        assert [b["id"] for b in listed["data"]["backups"]] == [backup_id]
        assert listed["data"]["backups"][0]["age"] == "just now"

        unconfirmed = rollback(synthesized.root, config=integration_config)
        assert unconfirmed["success"] is False
        assert "--force" in unconfirmed["error"]
        assert unconfirmed["data"]["backup"]["id"] == backup_id

        restored = rollback(synthesized.root, force=True, config=integration_config)
        assert restored["success"]
        assert restored["data"]["restored"] == backup_id
        assert synthesized.document_path.read_text(encoding="utf-8") == first
        assert status(synthesized.root, config=integration_config)["data"]["integrity"] == "ok"

    def test_restores_over_corrupt_state(self, synthesized, integration_config, write_memory, signals_file):
        write_memory("b.md", 500)
        asyncio.run(synthesize(synthesized.root, signals_file=signals_file, config=integration_config))
        synthesized.state_path.write_text("not json", encoding="utf-8")

        result = rollback(synthesized.root, force=True, config=integration_config)

        assert result["success"]
        assert any("reset" in w for w in result["warnings"])
        assert status(synthesized.root, config=integration_config)["data"]["run_count"] == 0


# ============================================================================
# audit / trace
# ============================================================================


class TestAudit:
    def test_list(self, synthesized, integration_config):
        result = audit(synthesized.root, list_only=True, config=integration_config)

        axioms = result["data"]["axioms"]
        assert len(axioms) == 1
        assert axioms[0]["tier"] == "domain"
        assert axioms[0]["notated"] == "誠: honesty > comfort"

    def test_stats(self, synthesized, integration_config):
        data = audit(synthesized.root, stats=True, config=integration_config)["data"]

        assert data["by_tier"] == {"core": 0, "domain": 1, "emerging": 0}
        assert data["by_dimension"]["honesty-framework"] == 1
        assert data["by_dimension"]["voice-presence"] == 0
        assert data["intact_chains"] == 1
        assert data["broken_links"] == 0

    def test_full_chain(self, synthesized, integration_config):
        axiom_id = audit(synthesized.root, config=integration_config)["data"]["axioms"][0]["id"]

        result = audit(synthesized.root, axiom_id=axiom_id, config=integration_config)

        chain = result["data"]["chain"]
        assert [len(p["sources"]) for p in chain["principles"]] == [3]
        assert result["warnings"] == []

    def test_missing_signal_reported(self, synthesized, integration_config):
        signals = json.loads(synthesized.signals_path.read_text(encoding="utf-8"))
        synthesized.signals_path.write_text(
            json.dumps([s for s in signals if s["id"] != "h2"]), encoding="utf-8"
        )
        axiom_id = audit(synthesized.root, config=integration_config)["data"]["axioms"][0]["id"]

        result = audit(synthesized.root, axiom_id=axiom_id, config=integration_config)

        assert result["success"]
        assert result["warnings"] == [
            f"Broken provenance: signal h2 referenced by {result['data']['chain']['principles'][0]['id']}"
        ]

    def test_corrupted_artifact_recommends_rollback(self, synthesized, integration_config):
        synthesized.signals_path.write_text('["not a record"]', encoding="utf-8")

        result = audit(synthesized.root, stats=True, config=integration_config)

        assert result["success"] is False
        assert "signals.json" in result["error"]
        assert "rollback" in result["recommendation"]

    def test_unknown_axiom(self, synthesized, integration_config):
        result = audit(synthesized.root, axiom_id="ax_missing", config=integration_config)

        assert result["success"] is False
        assert "Axiom not found" in result["error"]


class TestTrace:
    def test_by_symbol(self, synthesized, integration_config):
        result = trace(synthesized.root, "誠", config=integration_config)

        principle = result["data"]["principle"]
        assert principle["n_count"] == 3
        assert [s["file"] for s in principle["sources"]] == ["memory/a.md", "memory/b.md"]

    def test_unknown_symbol(self, synthesized, integration_config):
        result = trace(synthesized.root, "義", config=integration_config)

        assert result["success"] is False


# ============================================================================
# CLI
# ============================================================================


class TestCli:
    def run_cli(self, monkeypatch, *argv):
        monkeypatch.setattr(sys, "argv", ["soulsynth", *argv])
        try:
            cli.main()
        except SystemExit as e:
            return e.code
        return 0

    def test_version(self, monkeypatch, capsys):
        assert self.run_cli(monkeypatch, "--version") == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command_prints_help(self, monkeypatch, capsys):
        assert self.run_cli(monkeypatch) == 0
        assert "synthesize" in capsys.readouterr().out

    def test_status_json(self, monkeypatch, capsys, workspace, write_memory):
        write_memory("a.md", 300)

        code = self.run_cli(monkeypatch, "--workspace", str(workspace.root), "--json", "status")

        payload = json.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["data"]["pending_size"] == 300

    def test_rollback_without_backups_exits_nonzero(self, monkeypatch, capsys, workspace):
        code = self.run_cli(monkeypatch, "-w", str(workspace.root), "rollback", "--force")

        assert code == 1
        assert "No backups" in capsys.readouterr().out

    def test_synthesize_below_threshold(self, monkeypatch, capsys, workspace, write_memory):
        write_memory("a.md", 50)

        code = self.run_cli(monkeypatch, "-w", str(workspace.root), "synthesize")

        out = capsys.readouterr().out
        assert code == 0
        assert "Below threshold" in out
        assert "--force" in out

    def test_audit_empty_workspace(self, monkeypatch, capsys, workspace):
        code = self.run_cli(monkeypatch, "-w", str(workspace.root), "audit")

        assert code == 0
        assert "No axioms yet" in capsys.readouterr().out
