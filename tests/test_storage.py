from unittest.mock import MagicMock

import pandas as pd
import pytest
from botocore.exceptions import ClientError

import storage
from errors import UpstreamError


class NoSuchKey(Exception):
    pass


@pytest.fixture
def s3(monkeypatch):
    fake = MagicMock()
    fake.exceptions.NoSuchKey = NoSuchKey
    monkeypatch.setattr(storage, "get_s3_client", lambda: fake)
    return fake


def test_local_round_trip(tmp_path):
    grid = pd.DataFrame([["ID", "Name"], ["2", "Bus"]])
    storage.save_file("Expenses.csv", grid, root=tmp_path)

    assert (tmp_path / "sheets" / "Expenses.csv").exists()
    loaded = storage.load_file("Expenses.csv", root=tmp_path)
    assert loaded.values.tolist() == [["ID", "Name"], ["2", "Bus"]]


def test_cells_stay_text(tmp_path):
    storage.save_file("Budgets.csv", pd.DataFrame([["Rent", "0100"], ["Food", ""]]), root=tmp_path)
    loaded = storage.load_file("Budgets.csv", root=tmp_path)
    assert loaded.values.tolist() == [["Rent", "0100"], ["Food", ""]]


def test_load_missing_file(tmp_path):
    assert storage.load_file("Nope.csv", root=tmp_path) is None


def test_load_empty_file(tmp_path):
    (tmp_path / "sheets").mkdir()
    (tmp_path / "sheets" / "Empty.csv").write_bytes(b"")
    assert storage.load_file("Empty.csv", root=tmp_path).empty


def test_list_files(tmp_path):
    assert storage.list_files(root=tmp_path) == []
    storage.save_file("b.csv", b"x", root=tmp_path)
    storage.save_file("a.csv", b"y", root=tmp_path)
    assert storage.list_files(root=tmp_path) == ["a.csv", "b.csv"]


def test_save_to_s3(s3):
    storage.save_file("Expenses.csv", b"ID\n", bucket="expenses-bucket")
    s3.put_object.assert_called_once_with(Bucket="expenses-bucket", Key="sheets/Expenses.csv", Body=b"ID\n")


def test_load_from_s3(s3):
    body = MagicMock()
    body.read.return_value = b"ID,Name\n2,Bus\n"
    s3.get_object.return_value = {"Body": body}

    loaded = storage.load_file("Expenses.csv", bucket="expenses-bucket")
    assert loaded.values.tolist() == [["ID", "Name"], ["2", "Bus"]]


def test_load_missing_key_from_s3(s3):
    s3.get_object.side_effect = NoSuchKey()
    assert storage.load_file("Expenses.csv", bucket="expenses-bucket") is None


def test_s3_failure_becomes_upstream_error(s3):
    s3.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")
    with pytest.raises(UpstreamError):
        storage.save_file("Expenses.csv", b"ID\n", bucket="expenses-bucket")


def test_list_files_in_s3(s3):
    s3.list_objects_v2.return_value = {"Contents": [{"Key": "sheets/Expenses.csv"}, {"Key": "sheets/Groceries.csv"}]}
    assert storage.list_files(bucket="expenses-bucket") == ["Expenses.csv", "Groceries.csv"]
