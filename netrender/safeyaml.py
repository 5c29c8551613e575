# This file is part of netrender. See LICENSE file for license information.

import yaml


class NoAliasSafeDumper(yaml.dumper.SafeDumper):
    """SafeDumper that writes repeated objects out in full.

    netplan does not accept anchors, so shared lists such as nameservers
    must not become aliases.
    """

    def ignore_aliases(self, data):
        return True


def load(blob):
    """Parse a YAML (or JSON) document using only the safe constructors."""
    return yaml.safe_load(blob)


def dumps(obj, explicit_start=True, explicit_end=True, noalias=False) -> str:
    """Return obj as block style yaml, keeping mapping order."""
    dumper = NoAliasSafeDumper if noalias else yaml.dumper.SafeDumper
    return yaml.dump(
        obj,
        Dumper=dumper,
        line_break="\n",
        indent=4,
        default_flow_style=False,
        sort_keys=False,
        explicit_start=explicit_start,
        explicit_end=explicit_end,
    )
