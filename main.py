from rich.pretty import pprint

from transom import *


def show_log(session):
    """Print the arguments the log menu was left with."""
    pprint(session.args)


log = define_prefix(
    "log",
    ["Arguments",
        ("-a", "Show all", "--all"),
        ("-A", "Author", ("-A", "--author=")),
        ("-c", "Color", {"argument_format": "--color=%s", "choices": ("always", "never", "auto")}),
        (5, "-f", "First parent", "--first-parent")],
    ["Actions",
        ("l", "Log", show_log)],
    description="Show commit logs.",
    incompatible=[["--all", "--first-parent"]],
)


if __name__ == '__main__':
    pprint(log)
    host = ConsoleHost()
    with Session(host, config=Config(show_common=True, fancy=True)) as session:
        session.enter(log)
        host.loop(session)
