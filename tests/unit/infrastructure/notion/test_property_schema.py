from notiontpl.infrastructure.notion.property_schema import (
    build_db_properties,
    build_seed_properties,
    get_page_title_text,
    get_title_property_name,
    get_title_text,
    transform_properties_to_create,
)


def test_title_helpers():
    page = {"properties": {
        "Tags": {"type": "multi_select", "multi_select": []},
        "Task": {"type": "title", "title": [{"plain_text": "Write "}, {"text": {"content": "docs"}}]},
    }}
    assert get_page_title_text(page) == "Write docs"
    assert get_page_title_text({"properties": {}}, default="Cloned Page") == "Cloned Page"
    assert get_title_text(None) == ""
    assert get_title_property_name({"properties": {"Task": {"type": "title"}}}) == "Task"
    assert get_title_property_name({"properties": {}}) == "Name"


def test_transform_properties_to_create():
    retrieved = {
        "Name": {"id": "title", "type": "title", "title": {}},
        "Stage": {"id": "a", "type": "select", "select": {"options": [
            {"id": "x1", "name": "Todo", "color": "red"},
            {"id": "x2", "name": "Done", "color": "green"},
        ]}},
        "Cost": {"id": "b", "type": "number", "number": {"format": "dollar"}},
        "Score": {"id": "c", "type": "formula", "formula": {"expression": "prop(\"Cost\") * 2"}},
        "Project": {"id": "d", "type": "relation", "relation": {"database_id": "db-9", "type": "dual_property"}},
        "Total": {"id": "e", "type": "rollup", "rollup": {
            "relation_property_name": "Project", "rollup_property_name": "Cost", "function": "sum",
            "relation_property_id": "d",
        }},
        "Broken": {"id": "f"},
    }

    schema = transform_properties_to_create(retrieved)

    assert schema["Name"] == {"type": "title", "title": {}}
    assert schema["Stage"] == {"type": "select", "select": {"options": [
        {"name": "Todo", "color": "red"}, {"name": "Done", "color": "green"},
    ]}}
    assert schema["Cost"] == {"type": "number", "number": {"format": "dollar"}}
    assert schema["Score"]["formula"] == {"expression": "prop(\"Cost\") * 2"}
    assert schema["Project"]["relation"] == {
        "database_id": "db-9", "type": "dual_property", "dual_property": {},
    }
    assert schema["Total"]["rollup"] == {
        "relation_property_name": "Project", "rollup_property_name": "Cost", "function": "sum",
    }
    assert "Broken" not in schema


def test_build_db_properties_resolves_relations_by_alias():
    blueprint_schema = {
        "Name": {"type": "title"},
        "Status": {"type": "status", "status": {"options": ["Todo", {"name": "Done", "color": "green"}]}},
        "Timer Running": {"type": "checkbox"},
        "Project": {"type": "relation", "relation": {"database": "projects"}},
        "Owner": {"type": "people"},
    }

    without_ids = build_db_properties(blueprint_schema)
    assert "Project" not in without_ids
    assert "Owner" not in without_ids
    assert without_ids["Status"] == {"status": {"options": [
        {"name": "Todo", "color": "default"}, {"name": "Done", "color": "green"},
    ]}}
    assert without_ids["Timer Running"] == {"checkbox": {}}

    with_ids = build_db_properties(blueprint_schema, {"projects": "db-1"})
    assert with_ids["Project"] == {
        "relation": {"database_id": "db-1", "type": "single_property", "single_property": {}},
    }


def test_build_seed_properties():
    row = {"Name": "Draft outline", "Done": False, "Estimate": 3, "Notes": "first pass"}

    properties = build_seed_properties(row, "Task")

    assert properties["Task"] == {"title": [{"type": "text", "text": {"content": "Draft outline"}}]}
    assert properties["Done"] == {"checkbox": False}
    assert properties["Estimate"] == {"number": 3}
    assert properties["Notes"]["rich_text"][0]["text"]["content"] == "first pass"
    assert "Name" not in properties


def test_build_seed_properties_always_sets_title():
    assert build_seed_properties({}, "Name") == {
        "Name": {"title": [{"type": "text", "text": {"content": "Untitled"}}]},
    }
