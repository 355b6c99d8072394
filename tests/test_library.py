"""Tests for the import list, saved memories and the WhatsApp importer."""

import json
from pathlib import Path

import click
import pytest

from chatrecall.errors import StorageError
from chatrecall.importer import import_whatsapp_export, load_whatsapp_export
from chatrecall.library import AnalysisFile, ImportList
from chatrecall.models import ChatImport

from .conftest import WHATSAPP_IOS, build_zip, make_chunk


@pytest.fixture()
def imports(tmp_path: Path) -> ImportList:
    return ImportList(tmp_path / "imports" / "chat_imports.json")


class TestImportList:
    def test_missing_file_is_empty(self, imports: ImportList):
        assert imports.load() == []

    def test_add_and_get(self, imports: ImportList):
        chat = ChatImport(name="family", chunks=[make_chunk("01/03/2024")])
        assert imports.add(chat)
        assert imports.get("family") == chat
        assert imports.get("work") is None

    def test_file_is_json_array(self, imports: ImportList):
        imports.add(ChatImport(name="family", chunks=[make_chunk("01/03/2024", "hi")]))
        data = json.loads(imports.path.read_text())
        assert data[0]["name"] == "family"
        assert data[0]["chunks"][0]["messages"][0]["text"] == "hi"

    def test_add_without_replace_keeps_existing(self, imports: ImportList):
        imports.add(ChatImport(name="family", chunks=[make_chunk("1")]))
        assert not imports.add(ChatImport(name="family", chunks=[]), replace=False)
        assert len(imports.get("family").chunks) == 1

    def test_add_replaces_in_place(self, imports: ImportList):
        imports.add(ChatImport(name="a"))
        imports.add(ChatImport(name="b"))
        imports.add(ChatImport(name="a", chunks=[make_chunk("1")]))
        assert imports.names() == ["a", "b"]
        assert len(imports.get("a").chunks) == 1

    def test_remove(self, imports: ImportList):
        imports.add(ChatImport(name="a"))
        assert imports.remove("a")
        assert not imports.remove("a")
        assert imports.names() == []

    def test_corrupt_file(self, imports: ImportList):
        imports.path.parent.mkdir(parents=True)
        imports.path.write_text("{not a list")
        with pytest.raises(StorageError):
            imports.load()


class TestAnalysisFile:
    def test_missing_file(self, tmp_path: Path):
        assert AnalysisFile(tmp_path / "analysis.json").load().saved_memories == {}

    def test_save_memory_appends(self, tmp_path: Path):
        analysis = AnalysisFile(tmp_path / "analysis.json")
        analysis.save_memory("2024-03-01", "We had coffee at Luigi's.")
        analysis.save_memory("2024-03-01", "Bob was late.")
        analysis.save_memory("2024-03-02", "The hike.")

        data = json.loads((tmp_path / "analysis.json").read_text())
        assert data == {
            "saved_memories": {
                "2024-03-01": ["We had coffee at Luigi's.", "Bob was late."],
                "2024-03-02": ["The hike."],
            }
        }


class TestImporter:
    def test_zip_export(self, tmp_path: Path):
        export = tmp_path / "WhatsApp Chat - Family.zip"
        export.write_bytes(build_zip({"_chat.txt": WHATSAPP_IOS, "IMG-0001.jpg": b"\xff\xd8"}))

        chat = load_whatsapp_export(str(export))

        assert chat.name == "WhatsApp Chat - Family"
        assert [c.date for c in chat.chunks] == ["01/03/2024", "02/03/2024"]

    def test_txt_export_with_name(self, tmp_path: Path):
        export = tmp_path / "chat.txt"
        export.write_text(WHATSAPP_IOS, encoding="utf-8")

        chat = load_whatsapp_export(str(export), name="family")

        assert chat.name == "family"
        assert len(chat.chunks) == 2

    def test_prefers_chat_txt(self, tmp_path: Path):
        export = tmp_path / "export.zip"
        export.write_bytes(build_zip({"notes.txt": "nothing here", "_chat.txt": WHATSAPP_IOS}))
        assert len(load_whatsapp_export(str(export)).chunks) == 2

    def test_zip_without_transcript(self, tmp_path: Path):
        export = tmp_path / "export.zip"
        export.write_bytes(build_zip({"photo.jpg": b"\xff"}))
        with pytest.raises(click.ClickException, match="No chat transcript"):
            load_whatsapp_export(str(export))

    def test_not_a_zip(self, tmp_path: Path):
        export = tmp_path / "export.zip"
        export.write_text("plain text")
        with pytest.raises(click.ClickException, match="Not a valid ZIP"):
            load_whatsapp_export(str(export))

    def test_no_messages(self, tmp_path: Path):
        export = tmp_path / "empty.txt"
        export.write_text("nothing to see\n")
        with pytest.raises(click.ClickException, match="No messages"):
            load_whatsapp_export(str(export))

    def test_import_into_list(self, tmp_path: Path, imports: ImportList):
        export = tmp_path / "family.txt"
        export.write_text(WHATSAPP_IOS, encoding="utf-8")

        assert import_whatsapp_export(str(export), imports) is not None
        assert import_whatsapp_export(str(export), imports) is None
        assert import_whatsapp_export(str(export), imports, force=True) is not None
        assert imports.names() == ["family"]
