import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from notiontpl.core.services.template_service import NOT_PAGE_OR_DATABASE, TemplateService
from notiontpl.domain.errors import TemplateError
from notiontpl.domain.interfaces.file_system import FileSystem


@pytest.fixture
def mock_fs():
    fs = MagicMock(spec=FileSystem)
    fs.file_exists = AsyncMock(return_value=True)
    fs.read_file = AsyncMock()
    fs.write_file = AsyncMock()
    return fs


@pytest.fixture
def service(workspace, fast_retry, replicator, mock_fs):
    return TemplateService(workspace, fast_retry, replicator, mock_fs)


def make_master_page(workspace):
    page = workspace.add_page(
        {"title": {"type": "title", "title": [{"plain_text": "Weekly Plan"}]}},
        icon={"type": "emoji", "emoji": "🗓"},
        cover=None,
    )
    workspace.add_block(page["id"], block_type="heading_1", payload={"rich_text": [], "is_toggleable": False})
    toggle = workspace.add_block(page["id"], block_type="toggle", payload={"rich_text": []})
    workspace.add_block(toggle["id"], text="nested")
    return page


@pytest.mark.asyncio
async def test_export_page_template(workspace, service):
    page = make_master_page(workspace)

    template = await service.export_to_template(page["id"])

    assert template["kind"] == "page"
    assert template["title"] == "Weekly Plan"
    assert template["icon"] == {"type": "emoji", "emoji": "🗓"}
    assert template["children"] == [
        {"type": "heading_1", "heading_1": {"rich_text": [], "is_toggleable": False}},
        {"type": "toggle", "toggle": {"rich_text": []}, "has_children": True},
    ]


@pytest.mark.asyncio
async def test_export_database_template(workspace, service):
    database = workspace.add_database(
        {"Name": {"title": {}}, "Stage": {"select": {"options": [{"id": "1", "name": "A", "color": "red"}]}}},
        title="Roadmap",
    )

    template = await service.export_to_template(database["id"])

    assert template["kind"] == "database"
    assert template["title"] == "Roadmap"
    assert template["properties"]["Stage"] == {"type": "select", "select": {"options": [{"name": "A", "color": "red"}]}}


@pytest.mark.asyncio
async def test_export_unknown_id(service):
    with pytest.raises(TemplateError, match=NOT_PAGE_OR_DATABASE):
        await service.export_master("missing")


@pytest.mark.asyncio
async def test_export_to_json_pretty_and_compact(workspace, service):
    page = make_master_page(workspace)

    pretty = await service.export_to_json(page["id"])
    compact = await service.export_to_json(page["id"], pretty=False)

    assert pretty.startswith('{\n  "kind": "page"')
    assert "\n" not in compact
    assert json.loads(pretty) == json.loads(compact)


@pytest.mark.asyncio
async def test_page_template_under_page_uses_title_only(workspace, service):
    template = {
        "kind": "page",
        "title": "From JSON",
        "properties": {"Status": {"select": {"name": "x"}}},
        "children": [{"type": "paragraph", "paragraph": {"rich_text": []}} for _ in range(55)],
    }

    created = await service.create_from_template(template, "parent-page", "page")

    [(_, parent, properties)] = workspace.calls_for("create_page")
    assert parent == {"page_id": "parent-page"}
    assert properties == {"title": {"title": [{"type": "text", "text": {"content": "From JSON"}}]}}
    assert len(workspace.children[created["id"]]) == 55
    assert [c[2] for c in workspace.calls_for("append_children")] == [50, 5]


@pytest.mark.asyncio
async def test_page_template_under_database_keeps_properties(workspace, service):
    properties = {"Name": {"title": [{"text": {"content": "Row"}}]}, "Done": {"checkbox": True}}

    await service.create_from_template({"kind": "page", "properties": properties}, "db-1", "database")

    [(_, parent, sent)] = workspace.calls_for("create_page")
    assert parent == {"database_id": "db-1"}
    assert sent == properties


@pytest.mark.asyncio
async def test_database_template(workspace, service):
    template = {"kind": "database", "title": "Tasks", "properties": {"Name": {"type": "title", "title": {}}}}

    created = await service.create_from_template(template, "parent-page", "page")

    assert workspace.databases[created["id"]]["title"][0]["text"]["content"] == "Tasks"
    with pytest.raises(TemplateError, match="must be created under a page"):
        await service.create_from_template(template, "db-1", "database")


@pytest.mark.asyncio
async def test_unknown_template_kind(service):
    with pytest.raises(TemplateError, match="Unknown template kind"):
        await service.create_from_template({"kind": "board"}, "p", "page")


@pytest.mark.asyncio
async def test_load_template_errors(service, mock_fs):
    mock_fs.file_exists.return_value = False
    with pytest.raises(TemplateError, match="Template file not found"):
        await service.load_template("missing.json")

    mock_fs.file_exists.return_value = True
    mock_fs.read_file.return_value = "{not json"
    with pytest.raises(TemplateError, match="not valid JSON"):
        await service.load_template("broken.json")


@pytest.mark.asyncio
async def test_create_from_json_file(workspace, service, mock_fs):
    mock_fs.read_file.return_value = json.dumps({"kind": "page", "title": "Saved"})

    created = await service.create_from_json_file("saved.json", "parent-page", "page")

    assert workspace.pages[created["id"]]["properties"]["title"]["title"][0]["text"]["content"] == "Saved"
