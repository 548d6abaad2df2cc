"""Container image commands, remote deploy script and ssh command."""

from __future__ import annotations

import shlex

from shipline.core.config import DeployConfig, ImageConfig


def remote_target(deploy: DeployConfig) -> str:
    """user@host for the ssh command line."""
    if not deploy.host or not deploy.user:
        raise ValueError("deploy.host and deploy.user must both be set")
    return f"{deploy.user}@{deploy.host}"


def render_deploy_script(deploy: DeployConfig, image: str) -> str:
    """Render the bash script run on the remote host.

    The script stops at the first failing command, except for
    stopping and removing the old container, which may not exist.
    """
    q = shlex.quote
    name = q(deploy.container_name)

    run = ["docker", "run", "-d", "--name", name]
    if deploy.restart:
        run += ["--restart", q(deploy.restart)]
    for mapping in deploy.ports:
        run += ["-p", q(mapping)]
    for mapping in deploy.volumes:
        run += ["-v", q(mapping)]
    for key, value in deploy.env.items():
        run += ["-e", q(f"{key}={value}")]
    run.append(q(image))

    lines = [
        "set -euo pipefail",
        f"docker pull {q(image)}",
        f"docker stop {name} || true",
        f"docker rm {name} || true",
        " ".join(run),
        "docker image prune -f",
    ]
    return "\n".join(lines) + "\n"


def build_ssh_command(deploy: DeployConfig) -> str:
    """Build the local command that opens the deploy SSH session.

    The script itself is sent on stdin to `bash -s`, run from the
    remote application directory.
    """
    q = shlex.quote
    args = [deploy.ssh, "-o", "BatchMode=yes"]
    if deploy.port:
        args += ["-p", str(deploy.port)]
    if deploy.identity_file:
        args += ["-i", str(deploy.identity_file)]
    args.append(remote_target(deploy))

    remote_command = f"cd {q(deploy.app_dir)} && bash -s"
    return " ".join(q(arg) for arg in args) + " " + q(remote_command)


def build_image_commands(image: ImageConfig) -> list[tuple[str, str]]:
    """(stage name, command) pairs that build and push the image."""
    if not image.reference:
        raise ValueError("image.reference must be set")

    q = shlex.quote
    build = [image.engine, "build", "-t", image.reference]
    if image.dockerfile:
        build += ["-f", image.dockerfile]
    build.append(str(image.context))

    commands = [("build", " ".join(q(arg) for arg in build))]
    if image.push:
        commands.append(
            ("push", f"{q(image.engine)} push {q(image.reference)}")
        )
    return commands
