"""Container images used by the e2e suite."""

from __future__ import annotations

from pydantic import BaseModel, Field

# Locally built node image the chains are upgraded to.
LOCAL_NODE_REPOSITORY = "osmosis"
LOCAL_NODE_TAG = "debug"

# Locally built init image, used when the suite runs without an upgrade.
LOCAL_INIT_REPOSITORY = "osmosis-e2e-chain-init"
LOCAL_INIT_TAG = "debug"

# Pre-upgrade release images, one version below the upgrade target.
PREVIOUS_NODE_REPOSITORY = "osmolabs/osmosis-dev"
PREVIOUS_NODE_TAG = "v8.0.0-debug"
PREVIOUS_INIT_REPOSITORY = "osmolabs/osmosis-init"
PREVIOUS_INIT_TAG = "v8.0.0-e2e-v1"

RELAYER_REPOSITORY = "osmolabs/hermes"
RELAYER_TAG = "0.13.0"


def image_ref(repository: str, tag: str) -> str:
    return f"{repository}:{tag}"


class ImageConfig(BaseModel):
    """Repository/tag pairs for every container the suite launches.

    The node image validators start with depends on whether an upgrade runs:
    with an upgrade the chains start on the previous release and are swapped
    to the local image at the halt height, otherwise they start on the local
    image directly.
    """

    local_node_repository: str = LOCAL_NODE_REPOSITORY
    local_node_tag: str = LOCAL_NODE_TAG
    local_init_repository: str = LOCAL_INIT_REPOSITORY
    local_init_tag: str = LOCAL_INIT_TAG
    previous_node_repository: str = PREVIOUS_NODE_REPOSITORY
    previous_node_tag: str = PREVIOUS_NODE_TAG
    previous_init_repository: str = PREVIOUS_INIT_REPOSITORY
    previous_init_tag: str = PREVIOUS_INIT_TAG
    relayer_repository: str = RELAYER_REPOSITORY
    relayer_tag: str = Field(default=RELAYER_TAG)

    def init_image(self, upgrade: bool) -> str:
        if upgrade:
            return image_ref(self.previous_init_repository, self.previous_init_tag)
        return image_ref(self.local_init_repository, self.local_init_tag)

    def node_image(self, upgrade: bool) -> str:
        """Image validators start on before any upgrade."""
        if upgrade:
            return image_ref(self.previous_node_repository, self.previous_node_tag)
        return image_ref(self.local_node_repository, self.local_node_tag)

    @property
    def upgrade_image(self) -> str:
        """Image validators are relaunched on after the halt."""
        return image_ref(self.local_node_repository, self.local_node_tag)

    @property
    def relayer_image(self) -> str:
        return image_ref(self.relayer_repository, self.relayer_tag)
