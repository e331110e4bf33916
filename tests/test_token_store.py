import os

import pytest

from conftest import TOKEN_BODY


def test_save_then_load_round_trip(store):
    store.save(TOKEN_BODY)
    assert store.load() == TOKEN_BODY


def test_save_overwrites_previous_record(store):
    store.save(TOKEN_BODY)
    store.save({"access_token": "other"})
    assert store.load() == {"access_token": "other"}


def test_empty_file_means_no_credential(store):
    store.reset()
    assert os.path.exists(store.path)
    assert store.load() is None


def test_missing_file_raises(store):
    with pytest.raises(FileNotFoundError):
        store.load()


def test_update_keeps_refresh_token_the_response_omits(store):
    store.save(TOKEN_BODY)
    merged = store.update({"access_token": "at-2", "expires_in": 3600, "token_type": "Bearer"})
    assert merged["refresh_token"] == "rt-1"
    assert merged["access_token"] == "at-2"
    assert store.load() == merged


def test_update_on_missing_file_writes_fields(store):
    assert store.update({"access_token": "at-2"}) == {"access_token": "at-2"}
    assert store.load() == {"access_token": "at-2"}
