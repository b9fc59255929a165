import os
import logging
from typing import Optional

from google.cloud.firestore_v1 import AsyncClient

logger = logging.getLogger(__name__)


class FirestoreDB:
    """
    Owns the Firestore :class:`~google.cloud.firestore_v1.AsyncClient` that
    every document model talks to.

    The same object can point at:

    * **the Firestore emulator**, for local runs and CI;
    * **the real Firestore backend**, the default;
    * **any client-shaped double**, for tests that must not touch the network
      (assign it to :attr:`client` or call :meth:`mock_firestore_for_tests`).
    """

    def __init__(
        self,
        project_id: str,
        database: Optional[str] = None,
        credentials=None,
        emulator_host: Optional[str] = None,
    ):
        """
        Parameters
        ----------
        project_id :
            Google Cloud project identifier.
        database :
            Optional Firestore database id; the default database otherwise.
        credentials :
            Explicit credentials; the SDK default chain is used when *None*.
        emulator_host :
            ``host:port`` of a running Firestore emulator. When set, all
            traffic is routed to the emulator instead of production.
        """
        self.project_id = project_id
        self.database = database
        self.credentials = credentials
        self._emulator_host = emulator_host

        self.client: AsyncClient = self._init_client()

    @classmethod
    def from_settings(cls, settings, credentials=None) -> "FirestoreDB":
        """Build the store handle described by :class:`swapin.config.Settings`."""
        return cls(
            project_id=settings.project_id,
            database=settings.database,
            credentials=credentials,
            emulator_host=settings.emulator_host,
        )

    # --------------------------------------------------------------------- #
    # Internal helpers                                                      #
    # --------------------------------------------------------------------- #

    def _init_client(self) -> AsyncClient:
        if self._emulator_host:
            # The Google client libraries read this variable at construction.
            os.environ["FIRESTORE_EMULATOR_HOST"] = self._emulator_host
            logger.info(f"Using Firestore emulator on {self._emulator_host}")
        else:
            os.environ.pop("FIRESTORE_EMULATOR_HOST", None)
            logger.info(f"Using Firestore project {self.project_id}")
        return AsyncClient(
            project=self.project_id,
            database=self.database,
            credentials=self.credentials,
        )

    # --------------------------------------------------------------------- #
    # Public utility methods                                                #
    # --------------------------------------------------------------------- #

    def use_emulator(self, host: str = "localhost:8080"):
        """Switch to a local emulator and recreate the client."""
        self._emulator_host = host
        self.client = self._init_client()

    def clear_emulator(self):
        """Go back to the production endpoint with a fresh client."""
        self._emulator_host = None
        self.client = self._init_client()

    def mock_firestore_for_tests(self):
        """Replace the client with a :class:`unittest.mock.MagicMock`."""
        from unittest.mock import MagicMock

        self.client = MagicMock()
        logger.info("Firestore client replaced with MagicMock for unit tests.")

    @property
    def is_emulated(self) -> bool:
        return bool(self._emulator_host)
