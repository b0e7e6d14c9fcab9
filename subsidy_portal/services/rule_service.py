"""
Rule assembly: joins stored rules with their requirements and providers
into display-ready RuleAggregate values
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..config import Settings, settings as default_settings
from ..models.common import Identity
from ..models.provider import Provider
from ..models.requirement import RequirementDefinition
from ..models.rule import RuleAggregate
from ..utils.single_flight import SingleFlight
from .errors import StorageError
from .normalizer import as_mapping, as_optional_string, as_string, coerce_identity, decode_requirement
from .provider_service import ProviderDirectory, build_snapshot
from .store import MongoStore
from .summarizer import requirement_label, summarize_requirement

logger = logging.getLogger(__name__)

RULES_TABLE = "rules"
LINKS_TABLE = "rule_requirements"
REQUIREMENTS_TABLE = "requirements"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def coerce_amount(value: Any) -> Optional[float]:
    """Numeric subsidy amount, None when not specified or not numeric"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            amount = float(text)
        except ValueError:
            return None
    if math.isnan(amount) or math.isinf(amount):
        return None
    return amount


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _newest_first_key(rule: RuleAggregate) -> Tuple[bool, datetime]:
    created = parse_timestamp(rule.created_at)
    return (created is not None, created or _EPOCH)


def resolved_requirements(row: Mapping[str, Any]) -> List[RequirementDefinition]:
    """Normalize the requirements behind a rule's links, dropping unresolved links"""
    links = row.get("rule_requirements")
    if not isinstance(links, list):
        return []

    requirements = []
    for link in links:
        link = as_mapping(link)
        nested = link.get("requirements", link.get("requirement"))
        if not isinstance(nested, Mapping):
            continue
        requirements.append(decode_requirement(nested))
    return requirements


def build_conditions(requirements: Iterable[RequirementDefinition]) -> Dict[str, str]:
    """Label -> summary map with one entry per requirement, in requirement order"""
    conditions: Dict[str, str] = {}
    for requirement in requirements:
        base_label = requirement_label(requirement)
        label = base_label
        suffix = 2
        while label in conditions:
            label = f"{base_label} ({suffix})"
            suffix += 1
        conditions[label] = summarize_requirement(requirement)
    return conditions


def assemble_rule(
    row: Mapping[str, Any],
    provider_index: Mapping[str, Provider],
    default_logo: str
) -> RuleAggregate:
    requirements = resolved_requirements(row)
    provider_id = row.get("provider_id")
    provider = provider_index.get(str(provider_id)) if provider_id is not None else None

    return RuleAggregate(
        id=row.get("id") if row.get("id") is not None else "",
        rule_name=as_string(row.get("rule_name")),
        description=as_optional_string(row.get("description")),
        classification=as_optional_string(row.get("classification")),
        subsidy_amount=coerce_amount(row.get("subsidy_amount")),
        provider_id=provider_id,
        created_at=row.get("created_at"),
        conditions=build_conditions(requirements),
        requirements=requirements,
        provider=build_snapshot(provider, default_logo),
    )


def assemble_rules(
    rows: Iterable[Mapping[str, Any]],
    provider_index: Mapping[str, Provider],
    default_logo: str = default_settings.default_logo
) -> List[RuleAggregate]:
    """
    Build RuleAggregates from raw rule rows

    Args:
        rows: Rule rows, each with nested `rule_requirements` links
        provider_index: Provider directory index keyed by provider identity
        default_logo: Logo used for unknown providers

    Returns:
        Aggregates newest-first; ties keep storage order
    """
    rules = [assemble_rule(as_mapping(row), provider_index, default_logo) for row in rows]
    return sorted(rules, key=_newest_first_key, reverse=True)


class RulesService:
    """Loads rules from storage and keeps the assembled list for display"""

    def __init__(
        self,
        store: MongoStore,
        directory: ProviderDirectory,
        settings: Settings = default_settings
    ):
        self.store = store
        self.directory = directory
        self.settings = settings
        self._rules: List[RuleAggregate] = []
        self._flight = SingleFlight()
        self._latest_key: Any = None
        self.last_error: Optional[str] = None

    @property
    def rules(self) -> Tuple[RuleAggregate, ...]:
        return tuple(self._rules)

    @property
    def loading(self) -> bool:
        return self._flight.any_busy

    async def fetch_rules(self) -> List[RuleAggregate]:
        """Load and assemble every rule"""
        self._latest_key = "all"
        return await self._flight.run("all", lambda: self._fetch("all", {}))

    async def fetch_rules_by_provider(self, provider_id: Identity) -> List[RuleAggregate]:
        """Load and assemble the rules of one provider"""
        key = ("provider", str(provider_id))
        self._latest_key = key
        return await self._flight.run(key, lambda: self._fetch(key, {"provider_id": coerce_identity(provider_id)}))

    async def _fetch(self, key: Any, filters: Dict[str, Any]) -> List[RuleAggregate]:
        try:
            rows = await self._load_rows(filters)
        except StorageError as e:
            logger.error(f"Failed to fetch rules: {e}")
            if key == self._latest_key:
                self.last_error = e.message
                self._rules = []
            return []

        await self.directory.load()
        rules = assemble_rules(rows, self.directory.index, self.settings.default_logo)
        # Only the most recently requested load replaces the cache
        if key == self._latest_key:
            self._rules = rules
            self.last_error = None
        logger.info(f"Assembled {len(rules)} rules")
        return list(rules)

    async def _load_rows(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Rule rows with their requirement links nested under `rule_requirements`"""
        rows = await self.store.select(RULES_TABLE, filters, order_by="created_at", descending=True)
        rule_ids = [row["id"] for row in rows if row.get("id") is not None]
        if not rule_ids:
            return rows

        links = await self.store.select(LINKS_TABLE, {"rule_id": rule_ids})
        requirement_ids = list({link["requirement_id"] for link in links if link.get("requirement_id") is not None})
        requirements = []
        if requirement_ids:
            requirements = await self.store.select(REQUIREMENTS_TABLE, {"id": requirement_ids})
        requirements_by_id = {str(requirement.get("id")): requirement for requirement in requirements}

        links_by_rule: Dict[str, List[Dict[str, Any]]] = {}
        for link in links:
            nested = requirements_by_id.get(str(link.get("requirement_id")))
            links_by_rule.setdefault(str(link.get("rule_id")), []).append({"requirements": nested})

        for row in rows:
            row["rule_requirements"] = links_by_rule.get(str(row.get("id")), [])
        return rows
