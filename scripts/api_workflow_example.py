"""Drive a running API server through workflows, research and a QA suite.

Start the server first:  python src/main.py --serve
"""

import asyncio
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parent.parent / "src"))

from server import RindBrowserAPIError, RindBrowserClient
from utils import console, load_yaml_file


EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "config" / "examples"


async def main():
    async with RindBrowserClient() as client:
        try:
            await client.initialize({"headless": True})
            console.print("[green]✅ Browser initialized[/green]")

            steps = load_yaml_file(EXAMPLES_DIR / "steps.yaml")["steps"]
            workflow = await client.execute_workflow(steps)
            for outcome in workflow["results"]:
                mark = "✅" if outcome["success"] else "❌"
                console.print(f"  {mark} {outcome['step']}")

            analysis = await client.analyze(include=["content", "forms"])
            console.print(f"📄 Forms on page: {len(analysis['analysis']['forms'])}")

            competitors = load_yaml_file(EXAMPLES_DIR / "competitors.yaml")["competitors"]
            research = await client.competitor_research(competitors)
            for record in research["results"]:
                title = (record.get("pageData") or {}).get("title") or record.get("error")
                console.print(f"  🔎 {record['competitor']}: {title}")

            suite = load_yaml_file(EXAMPLES_DIR / "qa_suite.yaml")["testSuite"]
            qa = await client.qa_test(suite)
            verdict = "[green]PASSED[/green]" if qa["results"]["passed"] else "[red]FAILED[/red]"
            console.print(f"🧪 {suite['name']}: {verdict}")
        except RindBrowserAPIError as e:
            console.print(f"[red]❌ {e.status_code}: {e.error}[/red]")
        finally:
            await client.close()


if __name__ == "__main__":
    asyncio.run(main())
