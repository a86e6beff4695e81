from services.argparse_simple import split_command_line
from services.commands import parse_command
from services.messages import fetch_command_text, is_self_message, strip_mention


def test_split_command_line_on_whitespace():
    assert split_command_line("search July Report") == ["search", "July", "Report"]
    assert split_command_line("  update  Jobs WBS 1 x ") == ["update", "Jobs", "WBS", "1", "x"]


def test_split_command_line_keeps_quotes_literal():
    assert split_command_line('search "Village road"') == ["search", '"Village', 'road"']


def test_empty_text_parses_to_empty_command():
    req = parse_command("")
    assert req.name == ""
    assert req.args == []


def test_parse_command_resolves_aliases():
    assert parse_command("ค้นหา Somchai").name == "search"
    assert parse_command("แก้ไข Jobs WBS 1 x").name == "update"
    assert parse_command("HELP").name == "help"


def test_strip_mention_is_case_insensitive():
    assert strip_mention("Bot_Small search Somchai", "bot_small") == "search Somchai"
    assert strip_mention("search Somchai", "bot_small") == "search Somchai"
    assert strip_mention("  bot_small  ", "bot_small") == ""
    assert strip_mention(None, "bot_small") == ""


def test_is_self_message_trims_ids():
    assert is_self_message(" BOT ", "BOT") is True
    assert is_self_message("someone", "BOT") is False


def test_fetch_command_text_strips_mention(transport):
    transport.messages["m1"] = "bot_small help"
    assert fetch_command_text(transport, "m1", "bot_small") == "help"
