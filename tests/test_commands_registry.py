from services.commands_registry import command_specs, known_roots, resolve_root, validate_registry


def test_registry_validation_passes():
    assert validate_registry() == []


def test_known_roots():
    assert known_roots() == {"help", "search", "update"}


def test_thai_command_words_resolve():
    assert resolve_root("ค้นหา") == "search"
    assert resolve_root("แก้ไข") == "update"
    assert resolve_root("  ") == ""
    assert resolve_root("EDIT") == "update"


def test_every_spec_lists_its_aliases():
    search_specs = [spec for spec in command_specs() if spec.name == "search"]
    assert search_specs
    assert all("ค้นหา" in spec.aliases for spec in search_specs)
