"""
engine.py

Thin wrapper around the Docker SDK for the few engine calls the plugin makes.
Every SDK or transport failure comes out as EngineError.
"""
import os
from typing import Any, Dict, Iterator, List, Optional

import docker
import requests
from docker.tls import TLSConfig

from .errors import EngineError

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


class EngineClient:
    def __init__(self, client: docker.DockerClient) -> None:
        self.client = client

    @classmethod
    def connect(
        cls,
        host: str = DEFAULT_DOCKER_HOST,
        cert_path: str = "",
        tls_verify: bool = False,
    ) -> "EngineClient":
        """Connect to the daemon at ``host``, with a client certificate when ``cert_path`` is set."""
        tls: Optional[TLSConfig] = None
        try:
            if cert_path:
                tls = TLSConfig(
                    client_cert=(
                        os.path.join(cert_path, "cert.pem"),
                        os.path.join(cert_path, "key.pem"),
                    ),
                    verify=tls_verify,
                )
            return cls(docker.DockerClient(base_url=host, tls=tls))
        except docker.errors.TLSParameterError as e:
            raise EngineError(f"Error loading x509 key pair: {e}") from e
        except docker.errors.DockerException as e:
            raise EngineError(str(e)) from e

    def ping(self) -> None:
        try:
            self.client.ping()
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError(str(e)) from e

    def registries(self) -> List[str]:
        """Additional registries the daemon searches, in order. Live, never cached."""
        try:
            info = self.client.info()
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError(str(e)) from e
        # Only daemons with --add-registry support report this field.
        return [r.get("Name", "") for r in info.get("Registries") or []]

    def manifest_digest(self, reference: str) -> str:
        """Digest of the manifest the registry currently serves for ``reference``."""
        try:
            return self.client.images.get_registry_data(reference).id
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError(str(e)) from e

    def pull(self, reference: str) -> Iterator[Dict[str, Any]]:
        """Start pulling ``reference``; yields decoded progress messages."""
        try:
            stream = self.client.api.pull(reference, stream=True, decode=True)
            for event in stream:
                yield event
        except (docker.errors.DockerException, requests.exceptions.RequestException, ValueError) as e:
            raise EngineError(str(e)) from e

    def tag(self, source: str, target: str) -> None:
        repository, _, tag = target.rpartition(":")
        if not repository or "/" in tag:
            raise EngineError(f"invalid tag target {target!r}")
        try:
            ok = self.client.api.tag(source, repository, tag=tag, force=True)
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError(str(e)) from e
        if not ok:
            raise EngineError(f"failed to tag {source} as {target}")

    def local_repo_digest(self, image_name: str) -> str:
        """Registry digest a local image was pulled or pushed with."""
        try:
            image = self.client.images.get(image_name)
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError(str(e)) from e
        repo_digests = image.attrs.get("RepoDigests") or []
        for repo_digest in repo_digests:
            _, sep, digest = repo_digest.partition("@")
            if sep:
                return digest
        raise EngineError(
            f"Image '{image_name}' has no repository digest. Pull it from or push it to a registry first."
        )
