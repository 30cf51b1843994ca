"""Set command: write one field into the selected manifests."""

from __future__ import annotations

from dataclasses import dataclass, field

from wyvern.commands.base import CommandContext, SyncCommand
from wyvern.errors import ConfigError
from wyvern.filters import SelectionCriteria
from wyvern.manifest import ManifestDocument, edit_each
from wyvern.workspace import Package


def parse_field_value(value: str) -> bool | int | str:
    """``true``/``false`` become booleans, integers become integers."""
    if value in ("true", "false"):
        return value == "true"
    try:
        return int(value)
    except ValueError:
        return value


@dataclass
class SetFieldResult:
    """Result of set command."""

    packages: list[str] = field(default_factory=list)


class SetFieldCommand(SyncCommand[SetFieldResult]):
    """Set ``[root_key] name = value`` in every selected member."""

    def __init__(
        self,
        context: CommandContext,
        root_key: str,
        name: str,
        value: str,
        criteria: SelectionCriteria | None = None,
    ) -> None:
        super().__init__(context)
        self.root_key = root_key
        self.name = name
        self.value = parse_field_value(value)
        self.criteria = criteria or SelectionCriteria()

    def _set(self, pkg: Package, doc: ManifestDocument) -> str:
        self.reporter.status("Setting on", pkg.name)
        doc.set_value((self.root_key, self.name), self.value)
        return pkg.name

    def execute(self) -> SetFieldResult:
        if self.root_key == "package" and self.name == "name":
            raise ConfigError("To change the name please use the rename command!")
        if not self.root_key or not self.name:
            raise ConfigError("Both the table and the field name are required")

        predicate = self.context.predicate(self.criteria)
        selected = [p for p in self.workspace.members if predicate(p)]
        return SetFieldResult(edit_each(selected, self._set, reporter=self.reporter))
