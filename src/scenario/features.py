"""Loading of Gherkin feature files into validated scenario definitions."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from gherkin.errors import ParserError
from gherkin.parser import Parser
from gherkin.token_scanner import TokenScanner
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import FeatureLoadError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"<([^<>]+)>")


def _normalize_tag(tag: str) -> str:
    tag = tag.strip()
    return tag if tag.startswith("@") else f"@{tag}"


class StepDefinition(BaseModel):
    """One step line of a scenario."""

    keyword: str = ""
    text: str
    line: Optional[int] = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Step text must not be empty")
        return v


class ScenarioDefinition(BaseModel):
    """A runnable scenario, background steps included and outlines expanded."""

    name: str
    feature: str = ""
    tags: List[str] = Field(default_factory=list)
    steps: List[StepDefinition] = Field(default_factory=list)
    line: Optional[int] = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return [_normalize_tag(tag) for tag in v]

    def matches_tags(self, expressions: Sequence[str]) -> bool:
        """Check the scenario against tag filters.

        Plain tags select scenarios carrying any of them; tags prefixed with
        ``~`` exclude scenarios carrying them. No filters select everything.
        """
        include = [_normalize_tag(t) for t in expressions if not t.startswith("~")]
        exclude = [_normalize_tag(t[1:]) for t in expressions if t.startswith("~")]
        tags = set(self.tags)
        if any(tag in tags for tag in exclude):
            return False
        if include:
            return any(tag in tags for tag in include)
        return True


class FeatureDefinition(BaseModel):
    """A parsed feature file."""

    name: str
    path: Optional[str] = None
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    scenarios: List[ScenarioDefinition] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return [_normalize_tag(tag) for tag in v]

    def select(self, tags: Optional[Sequence[str]] = None) -> List[ScenarioDefinition]:
        if not tags:
            return list(self.scenarios)
        return [scenario for scenario in self.scenarios if scenario.matches_tags(tags)]


def _tags(node: Dict[str, Any]) -> List[str]:
    return [tag["name"] for tag in node.get("tags", [])]


def _steps(node: Dict[str, Any]) -> List[StepDefinition]:
    return [
        StepDefinition(
            keyword=step.get("keyword", ""),
            text=step["text"],
            line=step.get("location", {}).get("line"),
        )
        for step in node.get("steps", [])
    ]


def substitute(text: str, values: Dict[str, str]) -> str:
    """Replace ``<name>`` placeholders with example values (unknown names are kept)."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), text)


def _expand(
    scenario: Dict[str, Any],
    feature_name: str,
    inherited_tags: List[str],
    background: List[StepDefinition],
) -> Iterable[ScenarioDefinition]:
    name = scenario.get("name", "")
    tags = inherited_tags + _tags(scenario)
    steps = _steps(scenario)
    line = scenario.get("location", {}).get("line")
    examples = scenario.get("examples", [])

    if not examples:
        yield ScenarioDefinition(
            name=name, feature=feature_name, tags=tags, steps=background + steps, line=line
        )
        return

    index = 0
    for block in examples:
        header = block.get("tableHeader")
        if header is None:
            continue
        keys = [cell["value"] for cell in header["cells"]]
        for row in block.get("tableBody", []):
            index += 1
            values = dict(zip(keys, (cell["value"] for cell in row["cells"])))
            expanded = [
                StepDefinition(keyword=step.keyword, text=substitute(step.text, values), line=step.line)
                for step in steps
            ]
            yield ScenarioDefinition(
                name=f"{substitute(name, values)} (example {index})",
                feature=feature_name,
                tags=tags + _tags(block),
                steps=background + expanded,
                line=row.get("location", {}).get("line", line),
            )


def _collect(
    children: List[Dict[str, Any]],
    feature_name: str,
    tags: List[str],
    background: List[StepDefinition],
) -> List[ScenarioDefinition]:
    scenarios: List[ScenarioDefinition] = []
    for child in children:
        if "background" in child:
            background = background + _steps(child["background"])
        elif "scenario" in child:
            scenarios.extend(_expand(child["scenario"], feature_name, tags, background))
        elif "rule" in child:
            rule = child["rule"]
            scenarios.extend(
                _collect(rule.get("children", []), feature_name, tags + _tags(rule), background)
            )
    return scenarios


def parse_feature_text(text: str, path: Optional[str] = None) -> FeatureDefinition:
    """Parse Gherkin source into a :class:`FeatureDefinition`.

    Raises:
        FeatureLoadError: On Gherkin syntax errors or a document without feature
    """
    source = path or "<string>"
    try:
        document = Parser().parse(TokenScanner(text))
    except ParserError as e:
        raise FeatureLoadError(source, str(e)) from e

    feature = document.get("feature")
    if not feature:
        raise FeatureLoadError(source, "no Feature found")

    name = feature.get("name", "")
    tags = _tags(feature)
    try:
        definition = FeatureDefinition(
            name=name,
            path=path,
            description=(feature.get("description") or "").strip(),
            tags=tags,
            scenarios=_collect(feature.get("children", []), name, tags, []),
        )
    except ValidationError as e:
        raise FeatureLoadError(source, str(e)) from e

    logger.debug(f"Loaded feature {name!r} with {len(definition.scenarios)} scenario(s)")
    return definition


def load_feature(path: Path) -> FeatureDefinition:
    """Read and parse a feature file.

    Raises:
        FeatureLoadError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FeatureLoadError(path, e.strerror or str(e)) from e
    return parse_feature_text(text, path=str(path))


def discover_features(paths: Sequence[Path]) -> List[Path]:
    """Expand directories into the ``*.feature`` files they contain, sorted."""
    found: List[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            found.extend(sorted(path.rglob("*.feature")))
        else:
            found.append(path)
    return found
