import pytest

from liberalfeed import DEFAULT_CONFIGURATION, Configuration, UnknownOptionError, parse


def test_defaults():
    config = Configuration()
    assert config.sanitization_enabled is True
    assert config.sanitize_with_nofollow is True
    assert config.tidy_enabled is False
    assert config.timestamp_estimation_enabled is True
    assert config.max_ttl == 3 * 24 * 60 * 60
    assert config.output_encoding == "utf-8"
    assert config.user_agent.startswith("liberalfeed/")
    assert config == DEFAULT_CONFIGURATION


def test_from_options():
    config = Configuration.from_options({"tidy_enabled": True, "max_ttl": None})
    assert config.tidy_enabled is True
    assert config.max_ttl is None


def test_from_options_rejects_unknown_keys():
    with pytest.raises(UnknownOptionError, match="feed_cache"):
        Configuration.from_options({"feed_cache": "sqlite"})
    with pytest.raises(ValueError):
        Configuration.from_options({"tidy": True})


def test_replace():
    config = DEFAULT_CONFIGURATION.replace(user_agent=None)
    assert config.user_agent is None
    assert DEFAULT_CONFIGURATION.user_agent is not None
    with pytest.raises(UnknownOptionError):
        config.replace(colour="blue")


def test_from_env():
    config = Configuration.from_env(
        environ={
            "LIBERALFEED_TIDY_ENABLED": "yes",
            "LIBERALFEED_SANITIZE_WITH_NOFOLLOW": "false",
            "LIBERALFEED_MAX_TTL": "3600",
            "LIBERALFEED_TAB_SPACES": "",
            "LIBERALFEED_GENERATOR_NAME": "planet",
            "LIBERALFEED_TIDY_FUNCTION": "ignored",
            "OTHER_MAX_TTL": "1",
        }
    )
    assert config.tidy_enabled is True
    assert config.sanitize_with_nofollow is False
    assert config.max_ttl == 3600
    assert config.tab_spaces is None
    assert config.generator_name == "planet"
    assert config.tidy_function is None


def test_config_reaches_rendering(atom10_xml):
    config = Configuration(generator_name="planet", output_encoding="us-ascii")
    output = parse(atom10_xml, config=config).build_xml("atom")
    assert output.startswith('<?xml version="1.0" encoding="us-ascii"?>')
    assert ">planet</generator>" in output
