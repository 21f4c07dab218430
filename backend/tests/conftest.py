"""Shared test fixtures and configuration."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from exam_relay.api.ingest import limiter as ingest_limiter
from exam_relay.engine.live_event_bus import LiveEventBus
from exam_relay.main import create_app


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Each test starts with a fresh ingest rate-limit window."""
    ingest_limiter.reset()
    yield


@pytest.fixture
def event_bus() -> LiveEventBus:
    """Create a fresh event bus for testing."""
    return LiveEventBus(queue_size=8)


@pytest.fixture
def app(event_bus) -> FastAPI:
    """Create an app wired to the test event bus."""
    return create_app(event_bus)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def attempts_html() -> str:
    """Quiz attempts report as scraped from the LMS overview page."""
    return """
<table id="attempts" class="generaltable generalbox grades">
  <thead>
    <tr>
      <th class="header c0"><input type="checkbox" id="check-all"></th>
      <th class="header c1"></th>
      <th class="header c2">First name <span class="accesshide">Sort by First name ascending</span>
          / Last name</th>
      <th class="header c3">Email address</th>
      <th class="header c4">State</th>
      <th class="header c5">Started on</th>
      <th class="header c6">Time taken</th>
      <th class="header c7">Grade/100.00</th>
    </tr>
  </thead>
  <tbody>
    <tr class="">
      <td class="cell c0"><input type="checkbox" name="attemptid[]" value="101"></td>
      <td class="cell c1"><img src="/user/pix.php/1/f2.jpg" alt="Picture of Alice Smith"></td>
      <td class="cell c2"><a href="/user/view.php?id=1">Alice   Smith</a>
          <a class="reviewlink" href="/mod/quiz/review.php?attempt=101">Review attempt</a></td>
      <td class="cell c3">alice@example.com</td>
      <td class="cell c4">Finished</td>
      <td class="cell c5">1 May 2025, 9:00 AM</td>
      <td class="cell c6">12 mins 30 secs</td>
      <td class="cell c7">85.00<div class="commands"><a href="#">Regrade</a></div></td>
    </tr>
    <tr class="">
      <td class="cell c0"><input type="checkbox" name="attemptid[]" value="102"></td>
      <td class="cell c1"></td>
      <td class="cell c2">Bob Jones Review attempt</td>
      <td class="cell c3">bob@example.com</td>
      <td class="cell c4">In progress</td>
      <td class="cell c5">1 May 2025, 9:05 AM</td>
      <td class="cell c6">-</td>
      <td class="cell c7">-</td>
    </tr>
    <tr class="emptyrow">
      <td colspan="8" class="tabledivider"></td>
    </tr>
    <tr class="lastrow">
      <td class="cell c0"></td>
      <td class="cell c1"></td>
      <td class="cell c2">Overall average</td>
      <td class="cell c3"></td>
      <td class="cell c4"></td>
      <td class="cell c5"></td>
      <td class="cell c6"></td>
      <td class="cell c7">85.00</td>
    </tr>
  </tbody>
</table>
"""


@pytest.fixture
def attempts_rows() -> list[dict[str, str]]:
    """Rows expected from attempts_html after normalization."""
    return [
        {
            "First name / Last name": "Alice Smith",
            "State": "Finished",
            "Time taken": "12 mins 30 secs",
        },
        {
            "First name / Last name": "Bob Jones",
            "State": "In progress",
            "Time taken": "-",
        },
    ]
