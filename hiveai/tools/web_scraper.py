"""Tool fetching a web page and extracting its readable content."""
from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from hiveai.services.tool_registry import Tool

MAX_TEXT_CHARS = 20_000
MAX_LINKS = 100


class WebScraperTool(Tool):
    name = "web-scraper"
    description = "Fetch a web page and return its title, visible text and links. Provide an absolute URL."
    parameters = {
        "type": "object",
        "properties": {"url": {"type": "string", "description": "Absolute http(s) URL"}},
        "required": ["url"],
    }

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._timeout = httpx.Timeout(timeout, connect=10.0)
        self._transport = transport

    async def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = payload.get("url")
        if not url:
            return {"url": "", "error": "No URL provided"}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            return {"url": url, "error": f"Request failed: {exc}"}

        soup = BeautifulSoup(response.text, "html.parser")
        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        title = soup.title.get_text(strip=True) if soup.title else ""
        text = " ".join(soup.get_text(separator=" ").split())
        links = []
        for anchor in soup.find_all("a", href=True):
            links.append({"text": anchor.get_text(strip=True), "href": urljoin(str(response.url), anchor["href"])})
            if len(links) >= MAX_LINKS:
                break

        return {
            "url": str(response.url),
            "status": response.status_code,
            "title": title,
            "text": text[:MAX_TEXT_CHARS],
            "links": links,
        }
