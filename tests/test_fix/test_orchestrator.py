"""Tests for applying one unit's remediation plan."""

from __future__ import annotations

import pytest

from reqfix.core.errors import (
    MissingFileNameError,
    MissingRemediationDataError,
    MissingWorkspaceError,
    NoFixesCouldBeAppliedError,
    ProvenanceCycleError,
)
from reqfix.core.models import FixOptions, FixPhase, RemediationPlan, UpgradeSpec
from reqfix.fix.orchestrator import (
    RemediationRun,
    apply_all_fixes,
    filter_out_applied_upgrades,
    get_required_data,
)
from reqfix.manifest.names import standardize_package_key


def _messages(outcome) -> list[str]:
    return [change.user_message for change in outcome.changes]


class TestGetRequiredData:
    def test_missing_plan(self, make_unit):
        with pytest.raises(MissingRemediationDataError):
            get_required_data(make_unit(plan=None))

    def test_missing_target_file(self, make_unit):
        with pytest.raises(MissingFileNameError):
            get_required_data(make_unit(target_file=None, upgrade={"foo@1.0": "2.0"}))

    def test_missing_workspace(self, make_unit):
        with pytest.raises(MissingWorkspaceError) as exc_info:
            get_required_data(make_unit(upgrade={"foo@1.0": "2.0"}, ws=None))

        assert isinstance(exc_info.value, NoFixesCouldBeAppliedError)
        assert exc_info.value.error_code == "NO_WORKSPACE"

    def test_returns_all_three(self, make_unit, workspace):
        plan, target_file, ws = get_required_data(make_unit(upgrade={"foo@1.0": "2.0"}))

        assert "foo@1.0" in plan.upgrade
        assert target_file == "requirements.txt"
        assert ws is workspace


class TestFilterOutAppliedUpgrades:
    def test_drops_pins_satisfied_by_upgrades(self):
        plan = RemediationPlan.from_dict({
            "pin": {"django-rest@1.0": "1.5", "django-rest@2.0": "2.5", "bar@*": "3.1.0"},
        })

        left = filter_out_applied_upgrades(plan, ["Django_Rest@1.0"])

        assert list(left) == ["django-rest@2.0", "bar@*"]

    def test_leftover_never_contains_applied_upgrade(self):
        plan = RemediationPlan.from_dict({
            "pin": {"Foo.Bar@1.0": "2.0", "baz@1.0": "2.0", "qux@3": "4"},
        })
        applied = ["foo_bar@1.0", "QUX@3"]

        left = filter_out_applied_upgrades(plan, applied)

        applied_keys = {standardize_package_key(k) for k in applied}
        assert not applied_keys & {standardize_package_key(k) for k in left}
        assert list(left) == ["baz@1.0"]


class TestApplyAllFixes:
    @pytest.mark.asyncio
    async def test_upgrades_existing_line(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "foo==1.0.0\n"
        unit = make_unit(upgrade={"foo@1.0.0": "2.0.0"})

        outcome = await apply_all_fixes(unit)

        assert workspace.files["requirements.txt"] == "foo==2.0.0\n"
        assert _messages(outcome) == ["Upgraded foo from 1.0.0 to 2.0.0"]
        assert outcome.changes[0].file == "requirements.txt"
        assert list(outcome.fixed_meta) == ["requirements.txt"]

    @pytest.mark.asyncio
    async def test_appends_pin_for_missing_package(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "flask==2.0.0\n"
        unit = make_unit(pin={"bar@*": "3.1.0"})

        outcome = await apply_all_fixes(unit)

        assert workspace.files["requirements.txt"] == "flask==2.0.0\nbar==3.1.0\n"
        assert _messages(outcome) == ["Pinned bar from * to 3.1.0"]

    @pytest.mark.asyncio
    async def test_pin_comment_from_options(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "flask==2.0.0\n"
        unit = make_unit(pin={"bar@*": "3.1.0"})

        await apply_all_fixes(unit, FixOptions(pin_comment="security pin"))

        assert workspace.files["requirements.txt"].endswith("bar==3.1.0  # security pin\n")

    @pytest.mark.asyncio
    async def test_upgrades_come_before_pins_and_are_not_repinned(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "Foo==1.0.0\nflask==2.0.0\n"
        unit = make_unit(
            upgrade={"foo@1.0.0": "2.0.0"},
            pin={"foo@1.0.0": "2.0.0", "bar@*": "3.1.0"},
        )

        outcome = await apply_all_fixes(unit)

        assert _messages(outcome) == [
            "Upgraded Foo from 1.0.0 to 2.0.0",
            "Pinned bar from * to 3.1.0",
        ]
        assert workspace.files["requirements.txt"] == "Foo==2.0.0\nflask==2.0.0\nbar==3.1.0\n"

    @pytest.mark.asyncio
    async def test_upgrades_lines_in_included_files(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-r base.txt\nflask==2.0.0\n",
            "base.txt": "# shared\nfoo==1.0.0\n",
        })
        unit = make_unit(upgrade={"foo@1.0.0": "2.0.0"})

        outcome = await apply_all_fixes(unit)

        assert workspace.files["base.txt"] == "# shared\nfoo==2.0.0\n"
        assert workspace.written_paths() == ["base.txt"]
        assert _messages(outcome) == ["Upgraded foo from 1.0.0 to 2.0.0 (upgraded in base.txt)"]
        assert set(outcome.fixed_meta) == {"requirements.txt", "base.txt"}

    @pytest.mark.asyncio
    async def test_pins_go_to_constraints_file(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-c constraints.txt\nflask==2.0.0\n",
            "constraints.txt": "# pins\n",
        })
        unit = make_unit(pin={"bar@*": "3.1.0"})

        outcome = await apply_all_fixes(unit)

        assert workspace.files["constraints.txt"] == "# pins\nbar==3.1.0\n"
        assert workspace.files["requirements.txt"] == "-c constraints.txt\nflask==2.0.0\n"
        assert workspace.written_paths() == ["constraints.txt"]
        assert _messages(outcome) == ["Pinned bar from * to 3.1.0 (pinned in constraints.txt)"]

    @pytest.mark.asyncio
    async def test_only_first_constraints_file_gets_pins(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-c first.txt\n-c second.txt\n",
            "first.txt": "",
            "second.txt": "",
        })
        unit = make_unit(pin={"bar@*": "3.1.0"})

        await apply_all_fixes(unit)

        assert workspace.files["first.txt"] == "bar==3.1.0\n"
        assert workspace.files["second.txt"] == ""

    @pytest.mark.asyncio
    async def test_pins_stay_in_entry_file_without_constraints(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-r base.txt\n",
            "base.txt": "flask==2.0.0\n",
        })
        unit = make_unit(pin={"bar@*": "3.1.0"})

        await apply_all_fixes(unit)

        assert workspace.files["requirements.txt"] == "-r base.txt\nbar==3.1.0\n"
        assert workspace.files["base.txt"] == "flask==2.0.0\n"

    @pytest.mark.asyncio
    async def test_upgrade_and_pin_in_same_constraints_file(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-c constraints.txt\nflask\n",
            "constraints.txt": "foo==1.0.0\n",
        })
        unit = make_unit(upgrade={"foo@1.0.0": "2.0.0"}, pin={"bar@*": "3.1.0"})

        outcome = await apply_all_fixes(unit)

        assert workspace.files["constraints.txt"] == "foo==2.0.0\nbar==3.1.0\n"
        assert workspace.written_paths() == ["constraints.txt"]
        assert len(outcome.changes) == 2

    @pytest.mark.asyncio
    async def test_nested_entry_file(self, make_unit, workspace):
        workspace.files["services/api/requirements.txt"] = "foo==1.0.0\n"
        unit = make_unit(target_file="services\\api\\requirements.txt", upgrade={"foo@1.0.0": "2.0.0"})

        outcome = await apply_all_fixes(unit)

        assert workspace.files["services/api/requirements.txt"] == "foo==2.0.0\n"
        assert list(outcome.fixed_meta) == ["services/api/requirements.txt"]

    @pytest.mark.asyncio
    async def test_no_applicable_fix_is_an_error(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "flask==2.0.0\n"
        unit = make_unit(upgrade={"foo@1.0.0": "2.0.0"})

        with pytest.raises(NoFixesCouldBeAppliedError):
            await apply_all_fixes(unit)

        assert workspace.writes == []

    @pytest.mark.asyncio
    async def test_cycle_fails_the_unit(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-r base.txt\n",
            "base.txt": "-r requirements.txt\nfoo==1.0\n",
        })
        unit = make_unit(upgrade={"foo@1.0": "2.0"})

        with pytest.raises(ProvenanceCycleError):
            await apply_all_fixes(unit)

    @pytest.mark.asyncio
    async def test_missing_entry_file_raises_io_error(self, make_unit):
        unit = make_unit(upgrade={"foo@1.0": "2.0"})

        with pytest.raises(FileNotFoundError):
            await apply_all_fixes(unit)

    @pytest.mark.asyncio
    async def test_workspace_override_receives_all_io(self, make_unit, make_workspace, workspace):
        workspace.files["requirements.txt"] = "stale==0.1\n"
        other = make_workspace({"requirements.txt": "foo==1.0.0\n"})
        unit = make_unit(upgrade={"foo@1.0.0": "2.0.0"})

        outcome = await apply_all_fixes(unit, FixOptions(), workspace=other)

        assert outcome.modified_paths == ["requirements.txt"]
        assert other.files["requirements.txt"] == "foo==2.0.0\n"
        assert workspace.reads == [] and workspace.writes == []


class TestDryRun:
    @pytest.mark.asyncio
    async def test_dry_run_reports_same_changes_without_writing(self, make_unit, make_workspace):
        files = {
            "requirements.txt": "-c constraints.txt\nfoo==1.0.0\n",
            "constraints.txt": "",
        }
        dry_ws = make_workspace(files)
        real_ws = make_workspace(files)
        plan = {"upgrade": {"foo@1.0.0": "2.0.0"}, "pin": {"bar@*": "3.1.0"}}

        dry = await apply_all_fixes(make_unit(ws=dry_ws, **plan), FixOptions(dry_run=True))
        real = await apply_all_fixes(make_unit(ws=real_ws, **plan), FixOptions(dry_run=False))

        assert _messages(dry) == _messages(real)
        assert dry_ws.writes == []
        assert dry_ws.files == files
        assert sorted(real_ws.written_paths()) == ["constraints.txt", "requirements.txt"]

    @pytest.mark.asyncio
    async def test_repeated_dry_runs_are_identical(self, make_unit, workspace):
        workspace.files.update({
            "requirements.txt": "-r base.txt\nFoo==1.0.0\n",
            "base.txt": "baz>=0.1\n",
        })
        unit = make_unit(
            upgrade={"foo@1.0.0": "2.0.0", "baz@>=0.1": "0.4"},
            pin={"bar@*": "3.1.0"},
        )
        options = FixOptions(dry_run=True)

        first = await apply_all_fixes(unit, options)
        second = await apply_all_fixes(unit, options)

        assert _messages(first) == _messages(second)
        assert len(first.changes) == 3


class TestPhases:
    @pytest.mark.asyncio
    async def test_run_ends_done(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "foo==1.0.0\n"
        run = RemediationRun(make_unit(upgrade={"foo@1.0.0": "2.0.0"}))

        assert run.phase is None
        await run.run()

        assert run.phase is FixPhase.DONE
        assert run.applied_upgrades == ["foo@1.0.0"]

    @pytest.mark.asyncio
    async def test_pin_phase_sees_upgrade_phase_output(self, make_unit, workspace):
        workspace.files["requirements.txt"] = "foo==1.0.0\n"
        unit = make_unit(upgrade={"foo@1.0.0": "2.0.0"}, pin={"bar@*": "3.1.0"})
        run = RemediationRun(unit, FixOptions(dry_run=True))

        await run.run()

        assert run.pending["requirements.txt"] == "foo==2.0.0\nbar==3.1.0\n"

    def test_constructing_a_run_validates_unit(self, make_unit):
        with pytest.raises(MissingRemediationDataError):
            RemediationRun(make_unit(plan=None))

    def test_upgrade_spec_from_target_with_package_name(self):
        spec = UpgradeSpec.from_value({"upgradeTo": "django@2.0.1", "vulns": ["SNYK-1"]})

        assert spec.upgrade_to == "2.0.1"
        assert spec.vulns == ["SNYK-1"]

