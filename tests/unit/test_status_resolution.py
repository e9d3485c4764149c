# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from chainhttp.chain import ChainedConfig, Status
from chainhttp.errors import ConfigurationError


def _handler(name):
    def handle(from_server, body):
        return name

    return handle


def test_exact_code_on_parent_beats_bucket_on_child():
    parent = ChainedConfig(None)
    child = ChainedConfig(parent)
    exact = _handler("exact")
    bucket = _handler("bucket")
    parent.response.when(404, exact)
    child.response.failure(bucket)

    assert child.response.actual_action(404) is exact
    assert child.response.actual_action(500) is bucket


def test_nearest_exact_code_wins():
    parent = ChainedConfig(None)
    child = ChainedConfig(parent)
    parent.response.when(200, _handler("parent"))
    child_handler = child.response.when(200, _handler("child"))

    assert child.response.actual_action(200) is child_handler


def test_bucket_falls_back_to_root_success():
    top = ChainedConfig(None)
    middle = ChainedConfig(top)
    leaf = ChainedConfig(middle)
    success = top.response.success(_handler("root-success"))

    assert leaf.response.actual_action(204) is success
    assert leaf.response.actual_action(302) is success


def test_failure_bucket_starts_at_400():
    top = ChainedConfig(None)
    success = top.response.success(_handler("ok"))
    failure = top.response.failure(_handler("failed"))

    assert top.response.actual_action(399) is success
    assert top.response.actual_action(400) is failure


def test_no_handler_resolves_to_none():
    leaf = ChainedConfig(ChainedConfig(None))

    assert leaf.response.actual_action(200) is None
    assert leaf.response.actual_action(503) is None


def test_when_accepts_status_buckets_and_string_codes():
    config = ChainedConfig(None)
    success = config.response.when(Status.SUCCESS, _handler("s"))
    failure = config.response.when(Status.FAILURE, _handler("f"))
    created = config.response.when("201", _handler("created"))

    assert config.response.success_handler is success
    assert config.response.failure_handler is failure
    assert config.response.when(201) is created
    assert config.response.when("201") is created
    assert config.response.actual_action(200) is success
    assert config.response.actual_action(418) is failure


def test_when_registers_several_codes():
    config = ChainedConfig(None)
    denied = config.response.when([401, 403], _handler("denied"))

    assert config.response.actual_action(401) is denied
    assert config.response.actual_action(403) is denied
    assert config.response.when(404) is None


def test_when_rejects_non_numeric_codes():
    config = ChainedConfig(None)

    with pytest.raises(ConfigurationError):
        config.response.when("teapot", _handler("x"))
