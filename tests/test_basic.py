"""Basic tests to verify the system is working."""

import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from utils import config, BrowserOptions, load_yaml_file
from core import parse_steps


def test_config_loaded():
    """Test that configuration loads successfully."""
    assert config is not None
    assert config.root_dir.exists()
    assert config.page_text_limit > 0
    assert config.monitor_interval > 0


def test_declared_workflows_parse():
    """Test that every workflow in config/workflows.yaml is valid."""
    assert "page_snapshot" in config.workflows
    for name, steps in config.workflows.items():
        parsed = parse_steps(steps)
        assert len(parsed) == len(steps), name


def test_browser_options_defaults():
    """Test browser options built from configuration."""
    options = config.browser_options()
    assert options.browser_type == config.browser_type
    assert options.headless == config.headless
    assert options.timeout == config.browser_timeout


def test_browser_options_overrides():
    """Test that only supplied overrides replace configured values."""
    options = config.browser_options({"browserType": "firefox", "headless": False})
    assert options.browser_type == "firefox"
    assert options.headless is False
    assert options.timeout == config.browser_timeout
    assert options.viewport == BrowserOptions().viewport


def test_browser_options_rejects_bad_values():
    with pytest.raises(ValueError):
        config.browser_options({"timeout": "soon"})


def test_load_yaml_file(tmp_path):
    """Test loading a YAML document from disk."""
    path = tmp_path / "suite.yaml"
    path.write_text("name: smoke\ntests:\n  - name: home\n    url: https://example.com\n")
    data = load_yaml_file(path)
    assert data["name"] == "smoke"
    assert data["tests"][0]["url"] == "https://example.com"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])


def test_example_configs_parse():
    """Test that the sample inputs under config/examples are valid."""
    from core.qa import QASuite
    from core.research import CompetitorTarget

    examples = config.root_dir / "config" / "examples"

    suite = QASuite.model_validate(load_yaml_file(examples / "qa_suite.yaml")["testSuite"])
    assert suite.isolate_tests is True
    assert suite.tests[0].check_performance is True

    competitors = load_yaml_file(examples / "competitors.yaml")["competitors"]
    assert all(CompetitorTarget.model_validate(c).url.startswith("https://") for c in competitors)

    steps = parse_steps(load_yaml_file(examples / "steps.yaml")["steps"])
    assert [step.action for step in steps] == ["navigate", "wait", "extract", "analyze", "screenshot"]
    assert steps[-1].required is False
