"""
Progress summary over Langflow build monitor data
"""
import re
from typing import Any, Dict, Optional

AGENT_PREFIX = re.compile(r"^Agent[- ]?")


def summarize_builds(builds: Any) -> Optional[Dict[str, Any]]:
    """
    Describe the most recent component in a monitor payload.

    `vertex_builds` maps component ids to lists of builds; the last key is
    taken as the one currently running. Returns None when there is nothing
    to report.
    """
    if not isinstance(builds, dict):
        return None
    vertex_builds = builds.get("vertex_builds")
    if not isinstance(vertex_builds, dict) or not vertex_builds:
        return None

    component = list(vertex_builds)[-1]
    component_builds = vertex_builds[component]
    if not component_builds:
        return None

    current = component_builds[0] if isinstance(component_builds, list) else component_builds
    if not isinstance(current, dict):
        return None

    completed = False
    logs = (current.get("logs") or {}).get("response") or []
    if logs and isinstance(logs[-1], dict) and logs[-1].get("name") == "Chain End":
        completed = True

    label = AGENT_PREFIX.sub("", component)
    label = re.sub(r"[-_]", " ", label)

    return {"component": component, "label": label, "completed": completed}
