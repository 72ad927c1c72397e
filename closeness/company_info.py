import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from closeness.config import COMPANY_INFO_PATH

SUMMARY_MAX_LENGTH = 50


@dataclass(frozen=True)
class CompanyInfo:
    """Industry and free-text description of one ticker.

    Descriptions conventionally end with the company name in parentheses,
    e.g. ``"Designs consumer electronics, (Apple Inc.)"``.
    """

    industry: str
    description: str

    def _split_description(self):
        start = self.description.rfind("(")
        end = self.description.rfind(")")
        if start != -1 and end != -1 and end > start:
            name = self.description[start + 1 : end].strip()
            summary = self.description[:start].strip().rstrip(",")
            return name, summary
        return None

    @property
    def name(self) -> str:
        parts = self._split_description()
        return parts[0] if parts else self.description

    @property
    def summary(self) -> str:
        parts = self._split_description()
        if parts:
            return parts[1]
        if len(self.description) > SUMMARY_MAX_LENGTH:
            return self.description[: SUMMARY_MAX_LENGTH - 3] + "..."
        return self.description


def load_company_info(path: Path = COMPANY_INFO_PATH) -> Dict[str, CompanyInfo]:
    if not path.exists():
        return {}

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("company_info.json must be a dict of ticker to company info")

    infos: Dict[str, CompanyInfo] = {}
    for ticker, entry in data.items():
        if not isinstance(ticker, str) or not isinstance(entry, dict):
            continue
        industry = str(entry.get("industry", "")).strip()
        description = str(entry.get("description", "")).strip()
        if not industry and not description:
            continue
        infos[ticker.strip().upper()] = CompanyInfo(industry=industry, description=description)
    return infos


def save_company_info(infos: Dict[str, CompanyInfo], path: Path = COMPANY_INFO_PATH) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        str(ticker).strip().upper(): {
            "industry": info.industry,
            "description": info.description,
        }
        for ticker, info in infos.items()
    }
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def get_company_info(
    ticker: str,
    infos: Optional[Dict[str, CompanyInfo]] = None,
) -> Optional[CompanyInfo]:
    """Look up metadata for ``ticker``; None when it is not defined."""
    if infos is None:
        infos = load_company_info()
    return infos.get(str(ticker).strip().upper())
