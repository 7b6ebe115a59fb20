"""Configuration management for the RindBrowser system."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()


class BrowserOptions(BaseModel):
    """Options for launching one browser session."""
    browser_type: str = Field(default="chromium", alias="browserType")
    headless: bool = True
    timeout: int = 30000
    viewport: Dict[str, int] = Field(default_factory=lambda: {"width": 1920, "height": 1080})
    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        alias="userAgent"
    )

    model_config = {"populate_by_name": True}


class Config:
    """Main configuration class."""

    def __init__(self):
        self.root_dir = Path(__file__).parent.parent.parent
        self.config_dir = self.root_dir / "config"
        self.log_dir = Path(os.getenv("LOG_DIR", str(self.root_dir / "logs")))
        self.screenshot_dir = Path(os.getenv("SCREENSHOT_DIR", str(self.root_dir / "screenshots")))

        # Server
        self.host = os.getenv("HOST", "localhost")
        self.port = int(os.getenv("PORT", "3001"))

        # General Settings
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.browser_type = os.getenv("BROWSER_TYPE", "chromium")
        self.headless = os.getenv("HEADLESS", "true").lower() != "false"
        self.browser_timeout = int(os.getenv("BROWSER_TIMEOUT", "30000"))
        self.screenshot_quality = int(os.getenv("SCREENSHOT_QUALITY", "95"))
        self.page_text_limit = int(os.getenv("PAGE_TEXT_LIMIT", "5000"))

        # Monitoring (interval in seconds)
        self.monitor_interval = float(os.getenv("MONITOR_INTERVAL", "60"))
        self.monitor_queue_size = int(os.getenv("MONITOR_QUEUE_SIZE", "100"))
        self.monitor_history_size = int(os.getenv("MONITOR_HISTORY_SIZE", "50"))

        # Declared workflows, registered when a session starts
        self.workflows: Dict[str, List[Dict[str, Any]]] = self._load_workflows()

    def _load_workflows(self) -> Dict[str, List[Dict[str, Any]]]:
        """Load workflow declarations from YAML."""
        workflows_file = self.config_dir / "workflows.yaml"
        if not workflows_file.exists():
            return {}

        with open(workflows_file, 'r') as f:
            workflows_data = yaml.safe_load(f) or {}

        workflows = {}
        for name, steps in (workflows_data.get('workflows') or {}).items():
            if not isinstance(steps, list):
                print(f"Warning: Workflow {name} has no step list, skipping")
                continue
            workflows[name] = steps

        return workflows

    def ensure_directories(self):
        """Create output directories if they don't exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)

    def browser_options(self, overrides: Optional[Dict[str, Any]] = None) -> BrowserOptions:
        """Build browser options from the environment plus request overrides."""
        options = BrowserOptions(
            browser_type=self.browser_type,
            headless=self.headless,
            timeout=self.browser_timeout
        )
        if overrides:
            requested = BrowserOptions.model_validate(overrides)
            options = options.model_copy(
                update=requested.model_dump(include=requested.model_fields_set)
            )
        return options


def load_yaml_file(path: Path) -> Any:
    """Load a YAML document (workflow, QA suite or competitor list) from disk."""
    with open(path, 'r') as f:
        return yaml.safe_load(f)


# Global config instance
config = Config()
