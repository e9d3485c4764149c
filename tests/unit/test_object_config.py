# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from chainhttp.chain import HttpVerb
from chainhttp.config import HttpSettings
from chainhttp.defaults import root
from chainhttp.object_config import Execution, HttpObjectConfig, null_interceptor


def test_object_config_defaults_follow_settings():
    object_config = HttpObjectConfig(HttpSettings(max_threads=3, cookies_enabled=False))

    assert object_config.execution.max_threads == 3
    assert object_config.client.cookies_enabled is False
    assert object_config.chained_config.parent is root()
    assert object_config.chained_config.thread_safe is True


def test_every_verb_starts_with_identity_interceptor():
    execution = Execution()

    for verb in HttpVerb:
        assert execution.interceptor_for(verb) is null_interceptor
    assert null_interceptor("config", lambda config: (config, "ran")) == ("config", "ran")


def test_max_threads_must_be_positive():
    execution = Execution()

    with pytest.raises(ValueError):
        execution.max_threads = 0


def test_unknown_verb_is_rejected():
    with pytest.raises(ValueError):
        Execution().interceptor("fetch", null_interceptor)


def test_object_config_exposes_chain_shortcuts():
    object_config = HttpObjectConfig()
    object_config.request.set_headers({"X-A": "1"})
    object_config.context("text/csv", "dialect", "excel-tab")

    assert object_config.chained_config.request.headers == {"X-A": "1"}
    assert object_config.chained_config.actual_context("text/csv", "dialect") == "excel-tab"
