"""Tests for choosing the file that receives new pins."""

from __future__ import annotations

import pytest

from reqfix.fix.pinning import select_file_for_pinning


class TestSelectFileForPinning:
    @pytest.mark.asyncio
    async def test_entry_file_without_constraints(self, make_workspace):
        ws = make_workspace({"requirements.txt": "-r base.txt\nfoo==1.0\n"})

        target = await select_file_for_pinning(ws, "requirements.txt")

        assert target.file_name == "requirements.txt"
        assert target.file_content == "-r base.txt\nfoo==1.0\n"

    @pytest.mark.asyncio
    async def test_first_constraints_file(self, make_workspace):
        ws = make_workspace({
            "app/requirements.txt": "-c pins/one.txt\n-c two.txt\n",
            "app/pins/one.txt": "bar==1.0\n",
        })

        target = await select_file_for_pinning(ws, "app/requirements.txt")

        assert target.file_name == "pins/one.txt"
        assert target.file_content == "bar==1.0\n"
        assert "app/two.txt" not in ws.reads

    @pytest.mark.asyncio
    async def test_pending_content_wins(self, make_workspace):
        ws = make_workspace({
            "requirements.txt": "-c constraints.txt\n",
            "constraints.txt": "bar==1.0\n",
        })

        target = await select_file_for_pinning(
            ws, "requirements.txt", {"constraints.txt": "bar==2.0\n"},
        )

        assert target.file_content == "bar==2.0\n"
        assert ws.reads == ["requirements.txt"]

    @pytest.mark.asyncio
    async def test_missing_constraints_file(self, make_workspace):
        ws = make_workspace({"requirements.txt": "-c missing.txt\n"})

        with pytest.raises(FileNotFoundError):
            await select_file_for_pinning(ws, "requirements.txt")
