"""Shell scripts executed by init jobs."""

import hashlib

YT_BINARY = "/usr/bin/yt"
CLIENT_CONFIG_PATH = "/config/client.yaml"


def init_job_prologue() -> str:
    """Common preamble: fail fast, trace, point the CLI at the native driver."""
    commands = [
        "set -e",
        "set -x",
        f"export YT_DRIVER_CONFIG_PATH={CLIENT_CONFIG_PATH}",
    ]
    return "\n".join(commands)


def sha256_string(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def create_user_commands(user: str, password: str, token: str, is_superuser: bool) -> list[str]:
    """Commands creating a user, optionally with a token, a password and superuser rights.

    Every command is idempotent so that a restarted job can run them again.
    """
    commands = [f"{YT_BINARY} create user --attributes '{{name=\"{user}\"}}' --ignore-existing"]

    if token:
        token_hash = sha256_string(token)
        commands.append(
            f"{YT_BINARY} create map_node '//sys/cypress_tokens/{token_hash}' --ignore-existing"
        )
        commands.append(f"{YT_BINARY} set '//sys/cypress_tokens/{token_hash}/@user' '{user}'")

    if password:
        commands.append(
            f"{YT_BINARY} execute set_user_password "
            f"'{{user=\"{user}\";new_password_sha256=\"{sha256_string(password)}\"}}'"
        )

    if is_superuser:
        commands.append(f"{YT_BINARY} add-member {user} superusers || true")

    return commands
