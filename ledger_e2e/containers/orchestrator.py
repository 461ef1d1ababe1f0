"""
Container Orchestrator - owns every Docker network and container of a suite.

All other components receive ``ContainerHandle`` objects from here and look
them up by chain id and validator index in the ``ClusterRegistry``; none of
them create or delete Docker resources on their own.

Architecture:
1. create_network() - one bridge network per suite, containers resolve each
   other by name on it
2. run() / exec() - start containers and run commands inside them
3. remove() / purge() - drop single containers (binary swap, init cleanup)
4. teardown() - purge everything still tracked, relayers first, network last
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

import docker
from docker.errors import DockerException, NotFound

from ledger_e2e.core.exceptions import ResourceError
from ledger_e2e.core.logging import get_logger

if TYPE_CHECKING:
    from docker.models.containers import Container
    from docker.models.networks import Network

logger = get_logger("orchestrator")

# Teardown order, unknown roles go last before the networks.
ROLE_RELAYER = "relayer"
ROLE_VALIDATOR = "validator"
ROLE_INIT = "init"
_TEARDOWN_ORDER = (ROLE_RELAYER, ROLE_VALIDATOR, ROLE_INIT)


@dataclass
class RunSpec:
    """Everything needed to start one container."""

    name: str
    image: str
    role: str = "container"
    command: list[str] | None = None
    entrypoint: list[str] | None = None
    user: str | None = None
    environment: dict[str, str] = field(default_factory=dict)
    # "host_path:container_path" bind mounts
    mounts: list[str] = field(default_factory=list)
    # "1317/tcp" -> host port
    ports: dict[str, int] = field(default_factory=dict)
    network: str | None = None


@dataclass
class ContainerHandle:
    """A started container plus the metadata used in logs and lookups."""

    container: "Container"
    id: str
    name: str
    role: str = "container"

    @classmethod
    def from_container(cls, container: "Container", role: str) -> "ContainerHandle":
        return cls(
            container=container,
            id=container.id,
            name=(container.name or "").lstrip("/"),
            role=role,
        )

    @property
    def short_id(self) -> str:
        return self.id[:12]


@dataclass
class NetworkHandle:
    network: "Network"
    id: str
    name: str


@dataclass
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class ClusterRegistry:
    """
    Validator containers per chain, keyed by validator index.

    Validators that are not started automatically have no entry, so the
    number of handles for a chain is the number of running validators.
    """

    def __init__(self):
        self._handles: dict[str, dict[int, ContainerHandle]] = {}

    def set(self, chain_id: str, index: int, handle: ContainerHandle) -> None:
        self._handles.setdefault(chain_id, {})[index] = handle

    def get(self, chain_id: str, index: int) -> ContainerHandle:
        try:
            return self._handles[chain_id][index]
        except KeyError:
            raise ResourceError(
                "No running container for validator",
                details={"chain_id": chain_id, "index": index},
            ) from None

    def discard(self, chain_id: str, index: int) -> ContainerHandle | None:
        return self._handles.get(chain_id, {}).pop(index, None)

    def has(self, chain_id: str, index: int) -> bool:
        return index in self._handles.get(chain_id, {})

    def indexes(self, chain_id: str) -> list[int]:
        return sorted(self._handles.get(chain_id, {}))

    def handles(self, chain_id: str) -> list[ContainerHandle]:
        chain = self._handles.get(chain_id, {})
        return [chain[i] for i in sorted(chain)]

    def count(self, chain_id: str) -> int:
        return len(self._handles.get(chain_id, {}))

    def chain_ids(self) -> list[str]:
        return list(self._handles)

    def __iter__(self) -> Iterator[ContainerHandle]:
        for chain_id in self._handles:
            yield from self.handles(chain_id)


class ContainerOrchestrator:
    """
    Docker-backed container and network lifecycle.

    Usage:
        with ContainerOrchestrator() as orchestrator:
            net = orchestrator.create_network("a-b-testnet")
            handle = orchestrator.run(RunSpec(name="node", image="osmosis:debug", network=net.id))
            result = orchestrator.exec(handle, ["osmosisd", "status"])
        # every tracked container and network is purged here
    """

    def __init__(self, client: docker.DockerClient | None = None):
        if client is None:
            try:
                client = docker.from_env()
            except DockerException as e:
                raise ResourceError(
                    "Cannot connect to the Docker daemon", details={"error": str(e)}
                ) from e
        self.client = client
        self._containers: dict[str, ContainerHandle] = {}
        self._networks: dict[str, NetworkHandle] = {}

    def __enter__(self) -> "ContainerOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()

    @property
    def containers(self) -> list[ContainerHandle]:
        return list(self._containers.values())

    @property
    def networks(self) -> list[NetworkHandle]:
        return list(self._networks.values())

    def create_network(self, name: str) -> NetworkHandle:
        try:
            network = self.client.networks.create(name, driver="bridge")
        except DockerException as e:
            raise ResourceError(
                "Failed to create network", details={"network": name, "error": str(e)}
            ) from e

        handle = NetworkHandle(network=network, id=network.id, name=name)
        self._networks[handle.id] = handle
        logger.info(f"Created network {name} ({handle.id[:12]})")
        return handle

    def run(self, spec: RunSpec) -> ContainerHandle:
        """
        Start a detached container that is never restarted on failure.

        The container is tracked as soon as it exists, so one that was
        created but failed to start is still purged by teardown.
        """
        try:
            container = self.client.containers.create(
                image=spec.image,
                command=spec.command,
                name=spec.name,
                entrypoint=spec.entrypoint,
                user=spec.user or "",
                environment=spec.environment or None,
                volumes=spec.mounts or None,
                ports=spec.ports or None,
                network=spec.network,
                restart_policy={"Name": "no"},
            )
        except DockerException as e:
            raise ResourceError(
                "Failed to create container",
                details={"container": spec.name, "image": spec.image, "error": str(e)},
            ) from e

        handle = ContainerHandle.from_container(container, role=spec.role)
        self._containers[handle.id] = handle

        try:
            container.start()
        except DockerException as e:
            raise ResourceError(
                "Failed to start container",
                details={
                    "container": handle.name,
                    "id": handle.short_id,
                    "image": spec.image,
                    "error": str(e),
                },
            ) from e
        logger.info(f"Started {spec.role} container {handle.name}: {handle.id}")
        return handle

    def exec(
        self, handle: ContainerHandle, command: list[str], user: str | None = None
    ) -> ExecResult:
        try:
            exit_code, (stdout, stderr) = handle.container.exec_run(
                command, user=user or "", demux=True
            )
        except DockerException as e:
            raise ResourceError(
                "Failed to execute command in container",
                details={
                    "container": handle.name,
                    "id": handle.short_id,
                    "command": " ".join(command),
                    "error": str(e),
                },
            ) from e

        return ExecResult(
            exit_code=exit_code if exit_code is not None else -1,
            stdout=(stdout or b"").decode("utf-8", errors="replace"),
            stderr=(stderr or b"").decode("utf-8", errors="replace"),
        )

    def remove(self, handle: ContainerHandle, force: bool = True) -> None:
        """Remove a container, keeping anonymous volumes."""
        self._remove(handle, force=force, volumes=False)

    def purge(self, handle: ContainerHandle) -> None:
        """Force-remove a container together with its anonymous volumes."""
        self._remove(handle, force=True, volumes=True)

    def _remove(self, handle: ContainerHandle, force: bool, volumes: bool) -> None:
        try:
            handle.container.remove(force=force, v=volumes)
        except NotFound:
            logger.warning(f"Container {handle.name} ({handle.short_id}) already gone")
        except DockerException as e:
            raise ResourceError(
                "Failed to remove container",
                details={"container": handle.name, "id": handle.short_id, "error": str(e)},
            ) from e
        self._containers.pop(handle.id, None)
        logger.info(f"Removed container {handle.name} ({handle.short_id})")

    def purge_network(self, handle: NetworkHandle) -> None:
        try:
            handle.network.remove()
        except NotFound:
            logger.warning(f"Network {handle.name} already gone")
        except DockerException as e:
            raise ResourceError(
                "Failed to remove network",
                details={"network": handle.name, "error": str(e)},
            ) from e
        self._networks.pop(handle.id, None)
        logger.info(f"Removed network {handle.name}")

    def teardown(self) -> list[ResourceError]:
        """
        Purge every tracked container, then every tracked network.

        Each purge is attempted even if an earlier one failed; failures are
        logged and returned. Purged resources are no longer tracked, so a
        second call only retries what failed before.
        """
        errors: list[ResourceError] = []

        def rank(handle: ContainerHandle) -> int:
            if handle.role in _TEARDOWN_ORDER:
                return _TEARDOWN_ORDER.index(handle.role)
            return len(_TEARDOWN_ORDER)

        for handle in sorted(self._containers.values(), key=rank):
            try:
                self.purge(handle)
            except ResourceError as e:
                logger.error(f"Teardown: {e}")
                errors.append(e)

        for network in list(self._networks.values()):
            try:
                self.purge_network(network)
            except ResourceError as e:
                logger.error(f"Teardown: {e}")
                errors.append(e)

        return errors

    def close(self) -> None:
        self.client.close()
