from dataclasses import replace
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from services.errors import StoreError
from services.sheets import VALUE_INPUT_OPTION, GoogleSheetsStore, a1_range, quote_sheet_name


def _store():
    service = MagicMock()
    return GoogleSheetsStore(service, "sheet-id"), service


def test_sheet_names_are_always_quoted():
    assert quote_sheet_name("Jobs") == "'Jobs'"
    assert quote_sheet_name("Q1") == "'Q1'"
    assert quote_sheet_name("July Report") == "'July Report'"
    assert quote_sheet_name("Bob's") == "'Bob''s'"
    assert a1_range("A1", "A1:Z2") == "'A1'!A1:Z2"
    assert a1_range("งานเดือน7", "A1:Z2") == "'งานเดือน7'!A1:Z2"


def test_list_table_names():
    store, service = _store()
    service.spreadsheets().get().execute.return_value = {
        "sheets": [{"properties": {"title": "Jobs"}}, {"properties": {"title": "July"}}]
    }
    assert store.list_table_names() == ["Jobs", "July"]


def test_read_range_stringifies_cells():
    store, service = _store()
    values = service.spreadsheets().values()
    values.get().execute.return_value = {"values": [["a", 1], [None]]}

    assert store.read_range("Jobs!A1:Z") == [["a", "1"], [""]]
    values.get.assert_called_with(spreadsheetId="sheet-id", range="Jobs!A1:Z")


def test_read_range_without_values_is_empty():
    store, service = _store()
    service.spreadsheets().values().get().execute.return_value = {}
    assert store.read_range("Jobs!A1:Z") == []


def test_write_cell_uses_user_entered_values():
    store, service = _store()
    values = service.spreadsheets().values()
    values.update().execute.return_value = {"updatedCells": 1}

    store.write_cell("Jobs!B3", "75")
    values.update.assert_called_with(
        spreadsheetId="sheet-id",
        range="Jobs!B3",
        valueInputOption=VALUE_INPUT_OPTION,
        body={"values": [["75"]]},
    )
    assert VALUE_INPUT_OPTION == "USER_ENTERED"


def test_http_error_becomes_store_error():
    store, service = _store()
    error = HttpError(httplib2.Response({"status": "403"}), b'{"error": {"message": "denied"}}')
    service.spreadsheets().values().get().execute.side_effect = error

    with pytest.raises(StoreError):
        store.read_range("Jobs!A1:Z")


def test_from_settings_requires_credentials(settings, monkeypatch):
    monkeypatch.delenv("GOOGLE_CREDENTIALS", raising=False)
    with pytest.raises(StoreError):
        GoogleSheetsStore.from_settings(settings)


@patch("services.sheets.build")
@patch("services.sheets.Credentials.from_service_account_info")
def test_configured_timeout_reaches_the_http_client(mock_creds, mock_build, settings):
    store = GoogleSheetsStore.from_settings(replace(settings, sheets_timeout=7.5), {"type": "service_account"})

    http = mock_build.call_args.kwargs["http"]
    assert http.credentials is mock_creds.return_value
    assert http.http.timeout == 7.5
    assert store.service is mock_build.return_value
    assert store.spreadsheet_id == "sheet-id"
