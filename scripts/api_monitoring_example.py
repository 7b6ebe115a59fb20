"""Watch a URL through a running API server, polling the monitor's events.

Start the server first:  python src/main.py --serve
"""

import asyncio
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parent.parent / "src"))

from server import RindBrowserClient
from utils import console


URL = "https://example.com"
INTERVAL_MS = 10000
RUN_SECONDS = 30


async def main():
    async with RindBrowserClient() as client:
        await client.initialize({"headless": True})
        monitor = await client.start_monitor(URL, interval=INTERVAL_MS, monitor_id="example-monitor")
        console.print(f"📡 Monitor started: {monitor['monitorId']} -> {URL} every {INTERVAL_MS / 1000:.0f}s")

        try:
            await asyncio.sleep(RUN_SECONDS)
            events = await client.monitor_events(monitor["monitorId"])
            for event in events["events"]:
                style = "green" if event["status"] == "up" else "red"
                load_time = (event.get("metrics") or {}).get("loadTime")
                console.print(f"  [{style}]{event['timestamp']}  {event['status'].upper()}[/{style}]  loadTime={load_time}")
            console.print(f"Skipped ticks: {events['monitor']['skippedTicks']}")
        finally:
            await client.stop_monitor(monitor["monitorId"])
            await client.close()


if __name__ == "__main__":
    asyncio.run(main())
