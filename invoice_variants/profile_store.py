from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from invoice_variants.models import BuyerProfile, CompanyProfile

_COMPANY_FIELDS = {
    "id": "id",
    "name": "name",
    "address": "address",
    "email": "email",
    "phone": "phone",
    "currency": "currency",
    "tax_id": "tax_id",
    "logo": "logo",
    "primary_color": "primary_color",
    "secondary_color": "secondary_color",
    "font_family": "font_family",
}


@dataclass
class ProfilePools:
    company: Optional[CompanyProfile] = None
    buyers: List[BuyerProfile] = field(default_factory=list)
    logos: List[str] = field(default_factory=list)


class ProfileStore:
    """
    Loads the branding pools from a JSON file:

        {"company": {...}, "buyers": [{...}, ...], "logos": ["a.png", ...]}

    Relative logo paths are resolved against the JSON file's folder.
    """

    def __init__(self, json_path: Path):
        self.json_path = Path(json_path)

    def _resolve_logo(self, value: Any, where: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{where} must be a non-empty path string")
        p = Path(value)
        if not p.is_absolute():
            p = self.json_path.parent / p
        return str(p)

    def _company(self, row: Any) -> Optional[CompanyProfile]:
        if row is None:
            return None
        if not isinstance(row, dict):
            raise ValueError(f"'company' in {self.json_path} must be an object")
        if not row.get("name"):
            raise ValueError(f"Company in {self.json_path} has no 'name'")
        kwargs: Dict[str, Any] = {attr: str(row[key]) for key, attr in _COMPANY_FIELDS.items() if row.get(key) is not None}
        if "logo" in kwargs:
            kwargs["logo"] = self._resolve_logo(kwargs["logo"], "company.logo")
        return CompanyProfile(**kwargs)

    def load(self) -> ProfilePools:
        if not self.json_path.exists():
            raise FileNotFoundError(f"Profiles file not found: {self.json_path}")

        try:
            data = json.loads(self.json_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.json_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"{self.json_path} must contain a top-level JSON object.")

        buyers_raw = data.get("buyers", [])
        if not isinstance(buyers_raw, list):
            raise ValueError(f"'buyers' in {self.json_path} must be a list.")

        buyers: List[BuyerProfile] = []
        for idx, row in enumerate(buyers_raw):
            if not isinstance(row, dict):
                raise ValueError(f"buyers[{idx}] must be an object.")
            if not row.get("name"):
                raise ValueError(f"Buyer #{idx + 1} has no 'name'")
            buyers.append(BuyerProfile(
                name=str(row["name"]),
                address=row.get("address"),
                email=row.get("email"),
                phone=row.get("phone"),
            ))

        logos_raw = data.get("logos", [])
        if not isinstance(logos_raw, list):
            raise ValueError(f"'logos' in {self.json_path} must be a list.")
        logos = [self._resolve_logo(v, f"logos[{idx}]") for idx, v in enumerate(logos_raw)]

        return ProfilePools(company=self._company(data.get("company")), buyers=buyers, logos=logos)
