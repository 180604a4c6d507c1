from typing import Dict, List, Optional, Sequence, Tuple

from curtaincore.models import Settings


def split_sample_name(sample: str) -> Tuple[str, str]:
    """``"Cond.A.1"`` -> ``("Cond.A", "1")``; a name without a dot has no condition."""
    name_array = sample.split(".")
    replicate = name_array[-1]
    condition = ".".join(name_array[:-1])
    return condition, replicate


def group_samples_and_assign_colors(
    sample_names: Optional[Sequence[str]], settings: Settings
) -> Settings:
    """
    Derive conditions from sample column names and merge them into settings.

    Args:
        sample_names: Sample column names, e.g. ``["CondA.1", "CondA.2"]``
        settings: Settings currently stored for the dataset

    Returns:
        New settings with condition order, colors, sample map, sample order and
        sample visibility merged; the input settings are returned as they are
        when there are no samples
    """
    if not sample_names:
        return settings

    palette = settings.default_color_list
    conditions: List[str] = []
    color_position = 0
    color_map: Dict[str, str] = {}
    sample_map: Dict[str, Dict[str, str]] = {}
    sample_order: Dict[str, List[str]] = {}
    sample_visible: Dict[str, bool] = {}

    for sample in sample_names:
        condition, replicate = split_sample_name(sample)

        # a stored mapping is a manual override and wins
        stored = settings.sample_map.get(sample, {}).get("condition")
        if stored is not None:
            condition = stored

        if condition and condition not in conditions:
            conditions.append(condition)
            if palette:
                if color_position >= len(palette):
                    color_position = 0
                color_map[condition] = palette[color_position]
                color_position += 1

        samples = sample_order.setdefault(condition, [])
        if sample not in samples:
            samples.append(sample)

        sample_visible.setdefault(sample, True)

        sample_map[sample] = {
            "condition": condition,
            "replicate": replicate,
            "name": sample,
        }

    return _merge_settings(
        settings, conditions, color_map, sample_map, sample_order, sample_visible
    )


def _merge_settings(
    settings: Settings,
    conditions: List[str],
    color_map: Dict[str, str],
    sample_map: Dict[str, Dict[str, str]],
    sample_order: Dict[str, List[str]],
    sample_visible: Dict[str, bool],
) -> Settings:
    if settings.condition_order:
        condition_order = [c for c in settings.condition_order if c in conditions]
        condition_order += [c for c in conditions if c not in condition_order]
    else:
        condition_order = list(conditions)

    final_colors = dict(settings.color_map)
    for condition, color in color_map.items():
        final_colors.setdefault(condition, color)

    if settings.sample_map:
        final_sample_map = {
            sample: dict(info)
            for sample, info in settings.sample_map.items()
            if sample in sample_map
        }
        for sample, info in sample_map.items():
            final_sample_map.setdefault(sample, info)
    else:
        final_sample_map = sample_map

    final_order = {k: list(v) for k, v in settings.sample_order.items()}
    for condition, samples in sample_order.items():
        merged = final_order.setdefault(condition, [])
        merged.extend(s for s in samples if s not in merged)
    final_order = {k: v for k, v in final_order.items() if k in condition_order}

    final_visible = {
        sample: visible
        for sample, visible in settings.sample_visible.items()
        if sample in sample_map
    }
    for sample, visible in sample_visible.items():
        final_visible.setdefault(sample, visible)

    return settings.replace(
        condition_order=condition_order,
        color_map=final_colors,
        sample_map=final_sample_map,
        sample_order=final_order,
        sample_visible=final_visible,
    )


def condition_colors(settings: Settings) -> Dict[str, str]:
    """Condition -> color in display order, for conditions that have one."""
    return {
        c: settings.color_map[c] for c in settings.condition_order if c in settings.color_map
    }
