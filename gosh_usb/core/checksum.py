"""Checksum Verifier.

Computes a digest of the selected image on explicit request only and
exposes it for comparison with the digest the user typed. Results for
an image or algorithm that is no longer selected are discarded by the
reducer.
"""

import logging

from gosh_usb.backend.base import Backend, BackendError
from gosh_usb.state import actions
from gosh_usb.state.store import Store
from gosh_usb.types import ChecksumAlgorithm, ChecksumComparison

logger = logging.getLogger(__name__)


class ChecksumVerifier:
    """On-demand checksum calculation for the selected image."""

    def __init__(self, store: Store, backend: Backend) -> None:
        self.store = store
        self.backend = backend

    def set_algorithm(self, algorithm: ChecksumAlgorithm | str) -> None:
        """Switch algorithm; any digest under the previous one is dropped."""
        algorithm = ChecksumAlgorithm(algorithm.lower())
        self.store.dispatch(actions.ChecksumAlgorithmChanged(algorithm))

    def set_expected(self, value: str) -> None:
        self.store.dispatch(actions.ExpectedChecksumChanged(value))

    @property
    def comparison(self) -> ChecksumComparison:
        return self.store.state.checksum_comparison

    async def calculate(self) -> str | None:
        """Compute the digest of the selected image under the selected algorithm.

        Returns:
            The digest, or None if nothing is selected, a calculation is
            already running, or the backend failed.
        """
        state = self.store.state
        if state.selected_file is None:
            logger.debug("No image selected; nothing to checksum")
            return None
        if state.checksum_loading:
            logger.debug("Checksum calculation already in progress")
            return None

        path = state.selected_file.path
        algorithm = state.checksum_algorithm
        self.store.dispatch(actions.ChecksumRequested(path, algorithm))
        try:
            digest = await self.backend.calculate_checksum(path, algorithm)
        except BackendError as e:
            logger.warning("Checksum calculation failed for %s: %s", path, e.message)
            self.store.dispatch(actions.ChecksumFailed(path, algorithm))
            return None

        self.store.dispatch(actions.ChecksumCalculated(path, algorithm, digest))
        logger.info("%s of %s: %s", algorithm.value, path, digest)
        return digest


__all__ = ["ChecksumVerifier"]
