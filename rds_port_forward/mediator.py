from dataclasses import dataclass, field

from .exceptions import ResolverStateError


@dataclass(frozen=True)
class Arg:
    """A resolved CLI argument.

    ``skippable`` marks values that were the only possible choice (or were
    deliberately left out) and can be omitted when the command is repeated.
    """

    value: str | None
    skippable: bool


@dataclass
class Target:
    cluster_name: str | None = None
    task_id: str | None = None
    task_definition: str | None = None
    container_name: str | None = None


@dataclass
class Mediator:
    """State shared by the CLI layer and the resolvers for one invocation."""

    raw_args: dict[str, str | None] = field(default_factory=dict)
    processed_args: dict[str, Arg] = field(default_factory=dict)
    target: Target = field(default_factory=Target)
    verbose: bool = False

    def set_arg(self, key, value, skippable):
        if key in self.processed_args:
            raise ResolverStateError(f"Argument '{key}' was already resolved")
        self.processed_args[key] = Arg(value=value, skippable=skippable)

    def set_target(self, **fields):
        for name, value in fields.items():
            if not hasattr(self.target, name):
                raise AttributeError(f"Unknown target field '{name}'")
            if getattr(self.target, name) is not None:
                raise ResolverStateError(f"Target {name} was already resolved")
            setattr(self.target, name, value)
