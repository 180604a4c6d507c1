from typing import Dict, Iterable, Mapping, Optional, Sequence


def assign_colors(
    group_names: Iterable[str],
    color_map: Mapping[str, str],
    palette: Sequence[str],
) -> Dict[str, str]:
    """
    Give every group without a color one from the palette.

    Groups that already have a color keep it.  The palette is scanned as a
    circular buffer skipping colors that are in use; once a whole scan finds
    nothing free the palette counts as exhausted and colors are reused in
    round-robin order starting again from the first entry.

    Args:
        group_names: Group names in the order they should be served
        color_map: Existing group -> color assignments
        palette: Ordered list of colors to draw from

    Returns:
        A new color map; the input map is not modified
    """
    result = dict(color_map)
    if not palette:
        return result

    used = set(result.values())
    size = len(palette)
    position = 0
    exhausted = False

    for name in group_names:
        if name in result:
            continue
        if not exhausted:
            scanned = 0
            while palette[position] in used and scanned < size:
                position = (position + 1) % size
                scanned += 1
            if scanned == size:
                exhausted = True
                position = 0
        color = palette[position]
        result[name] = color
        used.add(color)
        position = (position + 1) % size

    return result


class ColorCache:
    """
    Group colors carried across classification runs.

    Re-rendering after a selection is added must not reshuffle the colors that
    were already handed out, so the caller keeps one cache per dataset and
    passes it to every :func:`curtaincore.classify.classify_and_color` call.
    """

    def __init__(self, color_map: Optional[Mapping[str, str]] = None):
        self._colors: Dict[str, str] = dict(color_map or {})

    def __contains__(self, name: str) -> bool:
        return name in self._colors

    def __len__(self) -> int:
        return len(self._colors)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._colors.get(name, default)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._colors)

    def update(self, color_map: Mapping[str, str]) -> None:
        """Take over explicit assignments, e.g. colors the user picked in settings."""
        self._colors.update(color_map)

    def assign(self, group_names: Iterable[str], palette: Sequence[str]) -> Dict[str, str]:
        self._colors = assign_colors(group_names, self._colors, palette)
        return self.snapshot()

    def clear(self) -> None:
        self._colors.clear()
