"""Docker-based builds."""

from ffbuild.docker.builder import BASE_IMAGES, DockerBuilder

__all__ = ["BASE_IMAGES", "DockerBuilder"]
