"""Ordered lists of candidate credentials.

A chain holds credential *classes* (built on demand with the ambient
parameters of a resolution) or already-built credential *instances*
(used as they are). Entries are named so failures can be reported per
candidate.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Sequence, overload

from .azure_cli import AzureCLICredential
from .client_secret import ClientSecretCredential
from .errors import CredentialChainEmptyError, InvalidCredentialChainError
from .interactive import AuthCodeCredential, DeviceCodeCredential
from .interfaces import TokenProvider


def new_instance(cls: type, params: Mapping[str, Any]) -> Any:
    """Instantiate ``cls`` with the entries of ``params`` it accepts.

    Parameters are matched by name against the constructor signature and
    ``None`` values are dropped, so the constructor's own defaults apply.
    """
    signature = inspect.signature(cls)
    takes_kwargs = any(
        p.kind is inspect.Parameter.VAR_KEYWORD for p in signature.parameters.values()
    )
    accepted = {
        name
        for name, p in signature.parameters.items()
        if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    }
    kwargs = {
        name: value
        for name, value in params.items()
        if value is not None and (takes_kwargs or name in accepted)
    }
    return cls(**kwargs)


def _is_provider_class(kind: object) -> bool:
    return isinstance(kind, type) and callable(getattr(kind, "get_token", None))


@dataclass(frozen=True)
class CredentialSpec:
    """One named chain entry.

    Attributes:
        name: Label used in logs and failure reports.
        kind: A credential class or a credential instance.
        overrides: Constructor arguments that win over the ambient ones.
    """

    name: str
    kind: Any
    overrides: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not _is_provider_class(self.kind) and not isinstance(self.kind, TokenProvider):
            raise InvalidCredentialChainError(
                f"Invalid credential chain entry {self.name!r}: expected a credential "
                f"class or instance, got {type(self.kind).__name__}"
            )

    @property
    def is_class(self) -> bool:
        return isinstance(self.kind, type)

    def is_interactive(self) -> bool:
        """Whether the entry may prompt, answered without building it."""
        if self.is_class:
            return bool(getattr(self.kind, "interactive", False))
        return self.kind.is_interactive()

    def build(self, params: Mapping[str, Any]) -> TokenProvider:
        if not self.is_class:
            return self.kind
        return new_instance(self.kind, {**params, **self.overrides})


class CredentialChain(Sequence[CredentialSpec]):
    """An immutable, non-empty, ordered sequence of :class:`CredentialSpec`.

    Entries can be looked up by position or by name.

    Raises:
        CredentialChainEmptyError: If ``specs`` is empty.
        InvalidCredentialChainError: If an entry is not a ``CredentialSpec``
            or a name is used twice.
    """

    def __init__(self, specs: Iterable[CredentialSpec]) -> None:
        specs = tuple(specs)
        if not specs:
            raise CredentialChainEmptyError()
        seen: set[str] = set()
        for spec in specs:
            if not isinstance(spec, CredentialSpec):
                raise InvalidCredentialChainError(
                    f"Expected CredentialSpec entries, got {type(spec).__name__}"
                )
            if spec.name in seen:
                raise InvalidCredentialChainError(f"Duplicate credential name {spec.name!r}")
            seen.add(spec.name)
        self._specs = specs

    @overload
    def __getitem__(self, index: int | str) -> CredentialSpec: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[CredentialSpec, ...]: ...

    def __getitem__(self, index):
        if isinstance(index, str):
            for spec in self._specs:
                if spec.name == index:
                    return spec
            raise KeyError(index)
        return self._specs[index]

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[CredentialSpec]:
        return iter(self._specs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CredentialChain):
            return NotImplemented
        return self._specs == other._specs

    def __hash__(self) -> int:
        return hash(tuple(spec.name for spec in self._specs))

    def __repr__(self) -> str:
        return f"CredentialChain({', '.join(self.names)})"

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self._specs]


def _to_spec(name: str, entry: Any) -> CredentialSpec:
    if isinstance(entry, CredentialSpec):
        return entry
    return CredentialSpec(name=name, kind=entry)


def credential_chain(*credentials: Any, **named: Any) -> CredentialChain:
    """Build a :class:`CredentialChain`.

    Positional entries are named ``credential_1``, ``credential_2``, ...
    unless they are already :class:`CredentialSpec` objects; keyword
    entries take their keyword as name and follow the positional ones.

    Example:
        >>> chain = credential_chain(azure_cli=AzureCLICredential)
        >>> chain.names
        ['azure_cli']
    """
    specs = [_to_spec(f"credential_{i}", entry) for i, entry in enumerate(credentials, 1)]
    specs.extend(_to_spec(name, entry) for name, entry in named.items())
    return CredentialChain(specs)


def default_credential_chain() -> CredentialChain:
    """client secret, Azure CLI, authorization code, then device code."""
    return credential_chain(
        client_secret=ClientSecretCredential,
        azure_cli=AzureCLICredential,
        auth_code=AuthCodeCredential,
        device_code=DeviceCodeCredential,
    )


def as_chain(chain: CredentialChain | None) -> CredentialChain:
    """Return ``chain``, or the default chain for ``None``.

    Raises:
        InvalidCredentialChainError: If ``chain`` is not a ``CredentialChain``.
    """
    if chain is None:
        return default_credential_chain()
    if not isinstance(chain, CredentialChain):
        raise InvalidCredentialChainError(
            f"chain must be a CredentialChain, got {type(chain).__name__}; "
            "build one with credential_chain()"
        )
    return chain
