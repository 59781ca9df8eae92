"""Dotted reference strings such as ``input.var`` or ``choices[0]``."""

from dataclasses import dataclass
from typing import Self


class PartBase:
    pass


@dataclass(slots=True, frozen=True)
class AttributePart(PartBase):
    name: str


@dataclass(slots=True, frozen=True)
class ItemPart(PartBase):
    key: str | int


@dataclass(slots=True, frozen=True)
class RefPath:
    root: str
    parts: tuple[PartBase, ...] = ()

    def __str__(self) -> str:
        result = self.root
        for part in self.parts:
            match part:
                case AttributePart(name):
                    result += f".{name}"
                case ItemPart(key):
                    result += f"[{key}]"
                case _:
                    msg = f"Unknown part type: {type(part)}"
                    raise TypeError(msg)
        return result

    @classmethod
    def parse(cls, path_str: str) -> Self:
        """Parse a reference string.

        Digits inside brackets become integer keys, anything else is a string
        key: ``choices[0]`` indexes a sequence, ``limits[max]`` a mapping.

        Raises:
            ValueError: If the string is empty or malformed.

        """
        s = path_str.strip()

        # Extract root by partitioning at the first occurrence of '.' or '['
        root_len = len(s)
        for sep in (".", "["):
            root_candidate, sep_found, _ = s.partition(sep)
            if sep_found and len(root_candidate) < root_len:
                root_len = len(root_candidate)

        root = s[:root_len]
        if not root:
            msg = f"Reference must start with a name. Got: '{path_str}'"
            raise ValueError(msg)

        s = s[root_len:]

        parts: list[PartBase] = []
        i = 0
        while i < len(s):
            if s[i] == ".":  # Attribute access
                i += 1
                start = i
                while i < len(s) and s[i] not in ".[":
                    i += 1
                name = s[start:i]
                if not name:
                    msg = f"Empty attribute name in reference '{path_str}'"
                    raise ValueError(msg)
                parts.append(AttributePart(name=name))
            elif s[i] == "[":  # Item access
                i += 1
                start = i
                while i < len(s) and s[i] != "]":
                    i += 1
                if i == len(s):
                    msg = f"Unclosed '[' in reference '{path_str}'"
                    raise ValueError(msg)
                key_str = s[start:i].strip()
                parts.append(ItemPart(key=int(key_str) if key_str.isdigit() else key_str))
                i += 1  # Skip the closing ']'
            else:
                msg = f"Unexpected character at position {i}: {s[i]}"
                raise ValueError(msg)

        return cls(root=root, parts=tuple(parts))
