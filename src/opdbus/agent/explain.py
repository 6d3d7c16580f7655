"""Ad hoc explanation of a DBus interface through the active provider."""

from opdbus.core.schema import DBusInterface
from opdbus.providers.base import BaseProvider

EXPLAIN_PROMPT = """\
You are a Linux systems expert specializing in DBus and low-level system architecture.

Explain the following DBus interface in a concise, developer-friendly way.  Identify its likely
purpose and the service it belongs to (e.g. systemd, NetworkManager), and show how one would use
its most important method.

Interface Name: {name}

Methods:
{methods}

Properties:
{properties}

Format the response in Markdown.  Keep it technical but clear.
"""


def interface_prompt(iface: DBusInterface) -> str:
    methods = "\n".join(
        f"- {m.name}({', '.join(f'{a.name}: {a.type}' for a in m.args)})" for m in iface.methods
    )
    properties = "\n".join(f"- {p.name} ({p.type}) [{p.access}]" for p in iface.properties)
    return EXPLAIN_PROMPT.format(
        name=iface.name, methods=methods or "- (none)", properties=properties or "- (none)"
    )


async def explain_interface(iface: DBusInterface, provider: BaseProvider) -> str:
    return await provider.generate_text(interface_prompt(iface))
