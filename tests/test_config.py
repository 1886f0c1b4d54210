#!/usr/bin/env python
# -*- encoding: utf-8 -*-
"""
Unit tests for the runtime configuration and config file handling.
"""
import json

import pytest

from spfluent import setup
from spfluent.config import config_section
from spfluent.config import read_config
from spfluent.config import runtime_config
from spfluent.config import RuntimeConfig
from spfluent.io import FetchClient
from spfluent.io import NiquestsFetchClient


class TestRuntimeConfig:
    def test_defaults(self) -> None:
        config = RuntimeConfig()
        assert config.headers == {}
        assert config.base_url is None
        assert isinstance(config.fetch_client_factory(), NiquestsFetchClient)

    def test_update_merges_headers(self) -> None:
        config = RuntimeConfig(headers={"A": "1"})
        config.update(headers={"B": "2"}, base_url="https://contoso")
        assert config.headers == {"A": "1", "B": "2"}
        assert config.base_url == "https://contoso"

    def test_update_accepts_sp_section_and_aliases(self) -> None:
        factory = object()
        config = RuntimeConfig()
        config.update(
            {
                "sp": {
                    "baseUrl": "https://contoso/sites/dev",
                    "fetchClientFactory": factory,
                    "pageContext": {"webAbsoluteUrl": "https://contoso/sites/dev"},
                }
            }
        )
        assert config.base_url == "https://contoso/sites/dev"
        assert config.fetch_client_factory is factory
        assert config.page_context == {"webAbsoluteUrl": "https://contoso/sites/dev"}

    def test_unknown_keys_are_ignored(self) -> None:
        config = RuntimeConfig()
        config.update(nonsense=True)
        assert not hasattr(config, "nonsense")

    def test_setup_updates_the_global_config(self) -> None:
        ret = setup(headers={"X-Test": "1"})
        assert ret is runtime_config
        assert runtime_config.headers == {"X-Test": "1"}
        runtime_config.reset()
        assert runtime_config.headers == {}

    def test_from_environment(self) -> None:
        config = RuntimeConfig.from_environment(
            {
                "SHAREPOINT_BASE_URL": "https://contoso/sites/dev",
                "SHAREPOINT_ACCESS_TOKEN": "secret",
            }
        )
        assert config.base_url == "https://contoso/sites/dev"
        assert config.headers == {"Authorization": "Bearer secret"}

    def test_from_environment_with_config_file(self, tmp_path) -> None:
        fn = tmp_path / "config.json"
        fn.write_text(
            json.dumps(
                {
                    "default": {"base_url": "https://contoso/sites/a"},
                    "other": {"inherits": "default", "headers": {"X-Other": "1"}},
                }
            )
        )
        config = RuntimeConfig.from_environment(
            {
                "SHAREPOINT_CONFIG_FILE": str(fn),
                "SHAREPOINT_CONFIG_SECTION": "other",
            }
        )
        assert config.base_url == "https://contoso/sites/a"
        assert config.headers == {"X-Other": "1"}


class TestConfigFiles:
    def test_config_section_inherits(self) -> None:
        config = {
            "default": {"base_url": "a", "headers": {"X": "1"}},
            "child": {"inherits": "default", "base_url": "b"},
        }
        assert config_section(config, "child") == {"base_url": "b", "headers": {"X": "1"}}
        assert config_section(config, "missing") == {}

    def test_read_json(self, tmp_path) -> None:
        fn = tmp_path / "config.json"
        fn.write_text('{"default": {"base_url": "x"}}')
        assert read_config(str(fn)) == {"default": {"base_url": "x"}}

    def test_read_missing_file(self, tmp_path) -> None:
        assert read_config(str(tmp_path / "nope.json")) == {}

    def test_read_yaml(self, tmp_path) -> None:
        pytest.importorskip("yaml")
        fn = tmp_path / "config.yaml"
        fn.write_text("default:\n  base_url: x\n")
        assert read_config(str(fn)) == {"default": {"base_url": "x"}}


class TestFetchClient:
    def test_niquests_client_is_a_fetch_client(self) -> None:
        assert isinstance(NiquestsFetchClient(), FetchClient)
