"""Wizard state machine: topic → configuration → scripting → assets.

A WizardSession owns one WizardState, the discovered topic list and the
history ledger for the lifetime of a session. All gateway calls go through
it, and at most one may be in flight: generation entry points raise
WizardBusyError while ``state.processing`` is set, navigation and history
restore simply refuse.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from content_wizard.config import Settings
from content_wizard.credentials import has_api_key, save_api_key
from content_wizard.errors import (
    CredentialInvalidatedError,
    WizardBusyError,
    WizardStateError,
)
from content_wizard.gateway import AssetResult, GenerationGateway
from content_wizard.history import HistoryLedger
from content_wizard.models import (
    ASSET_FIELDS,
    AssetKind,
    GenerationConfig,
    Script,
    Topic,
    WizardState,
    WizardStep,
)

logger = logging.getLogger(__name__)

READY_STATUS = "Draft ready."
RESTORED_STATUS = "Restored from history"


class WizardSession:
    """Single source of truth for one wizard run."""

    def __init__(
        self,
        gateway: GenerationGateway,
        ledger: Optional[HistoryLedger] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or gateway.settings
        self.ledger = ledger if ledger is not None else HistoryLedger()
        self.state = WizardState()
        self.topics: List[Topic] = []
        self._auto_discovered = False
        self._ticker: Optional[asyncio.Task] = None

    # ── Helpers ──────────────────────────────────────────────────────────────

    @property
    def processing(self) -> bool:
        return self.state.processing

    @property
    def config_draft(self) -> GenerationConfig:
        """Config to pre-fill the configuration step with."""
        return self.state.config or self.settings.generation

    def _require_idle(self) -> None:
        if self.state.processing:
            raise WizardBusyError(f"Busy: {self.state.status or 'operation in progress'}")

    def _advance(self, step: WizardStep) -> None:
        self.state.step = step
        if step > self.state.furthest_step:
            self.state.furthest_step = step

    @asynccontextmanager
    async def _busy(self, status: str, progress: Optional[int] = None) -> AsyncIterator[None]:
        self._require_idle()
        self.state.processing = True
        self.state.status = status
        if progress is not None:
            self.state.progress = progress
        try:
            yield
        finally:
            self.state.processing = False

    async def _tick_progress(self) -> None:
        cadence = self.settings.progress
        while self.state.processing and self.state.progress < cadence.ceiling:
            await asyncio.sleep(cadence.interval_seconds)
            if not self.state.processing:
                return
            self.state.progress = min(self.state.progress + cadence.step, cadence.ceiling)

    @asynccontextmanager
    async def _progress_ticker(self) -> AsyncIterator[asyncio.Task]:
        """Synthetic progress for the duration of the block; cancelled on any exit."""
        task = asyncio.create_task(self._tick_progress())
        self._ticker = task
        try:
            yield task
        finally:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self._ticker = None

    # ── API key ──────────────────────────────────────────────────────────────

    async def unlock(self) -> bool:
        """Leave the API-key step if a credential is available."""
        if not has_api_key():
            return False
        self._auto_discovered = False
        self._advance(WizardStep.DISCOVERY)
        await self._maybe_auto_discover()
        return self.state.step != WizardStep.API_KEY

    async def set_api_key(self, api_key: str) -> bool:
        save_api_key(api_key)
        return await self.unlock()

    def lock(self) -> None:
        """Force the user back to credential acquisition."""
        self.state.step = WizardStep.API_KEY
        self._auto_discovered = False

    # ── Discovery ────────────────────────────────────────────────────────────

    async def _maybe_auto_discover(self) -> None:
        if (
            self.state.step != WizardStep.DISCOVERY
            or self.topics
            or self._auto_discovered
            or self.state.processing
        ):
            return
        self._auto_discovered = True
        try:
            await self.refresh_topics(self.settings.discovery.default_category)
        except Exception as exc:
            # refresh_topics already recorded the failure in state.status
            logger.warning("Automatic topic discovery failed: %s", exc)

    async def refresh_topics(self, category: Optional[str] = None) -> List[Topic]:
        """Replace the topic list with fresh discoveries for *category*.

        An invalidated credential sends the wizard back to the API-key step
        and returns no topics; any other failure is recorded and re-raised.
        """
        category = category or self.settings.discovery.default_category
        try:
            async with self._busy(f"Scanning {category} trends...", progress=30):
                topics = await self.gateway.discover_topics(category)
        except CredentialInvalidatedError as exc:
            logger.warning("API key rejected during discovery: %s", exc)
            self.state.status = ""
            self.state.progress = 100
            self.lock()
            return []
        except WizardBusyError:
            raise
        except Exception as exc:
            self.state.status = f"Error: {exc}"
            self.state.progress = 0
            raise
        self.topics = topics
        self.state.status = ""
        self.state.progress = 100
        return list(topics)

    def select_topic(self, topic: Topic) -> bool:
        if self.state.processing:
            return False
        if self.state.step < WizardStep.DISCOVERY:
            raise WizardStateError("Unlock the wizard with an API key first")
        self.state.topic = topic
        self.state.progress = 33
        self._advance(WizardStep.CONFIGURATION)
        return True

    # ── Scripting ────────────────────────────────────────────────────────────

    async def submit_config(self, config: GenerationConfig) -> Optional[Script]:
        """Generate a script for the selected topic.

        Returns the script, or None when generation failed; the failure is
        then in ``state.status`` and the wizard stays on the scripting step.
        """
        self._require_idle()
        topic = self.state.topic
        if topic is None:
            raise WizardStateError("Select a topic before generating a script")

        self.state.config = config
        try:
            async with self._busy(f"Composing {config.format}...", progress=self.settings.progress.start):
                self._advance(WizardStep.SCRIPTING)
                async with self._progress_ticker():
                    script = await self.gateway.generate_script(topic, config)
        except Exception as exc:
            logger.error("Script generation failed: %s", exc, exc_info=True)
            self.state.progress = 0
            self.state.status = f"Error: {exc}"
            return None

        assets_before = self.state.assets.model_copy(deep=True)
        self.state.script = script
        self.state.progress = 100
        self.state.status = READY_STATUS
        self.ledger.upsert(topic, config, script, assets_before)
        return script

    async def retry_script(self) -> Optional[Script]:
        """Issue a brand-new generation with the active config."""
        if self.state.config is None:
            raise WizardStateError("No configuration to retry with")
        return await self.submit_config(self.state.config)

    def edit_script(
        self,
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
        bodies: Optional[Dict[int, str]] = None,
    ) -> Script:
        """Apply editor changes to the live script (history is not touched)."""
        self._require_idle()
        script = self.state.script
        if script is None:
            raise WizardStateError("No script to edit")
        for index, body in (bodies or {}).items():
            section = script.sections[index]
            if section.attribution:
                raise WizardStateError("The attribution section cannot be edited")
            section.content = body
        if title is not None:
            script.title = title
        if subtitle is not None:
            script.subtitle = subtitle
        return script

    def confirm_script(self) -> bool:
        if self.state.processing:
            return False
        if self.state.script is None:
            raise WizardStateError("No script to confirm")
        self._advance(WizardStep.ASSETS)
        return True

    # ── Assets ───────────────────────────────────────────────────────────────

    async def request_asset(self, kind: AssetKind) -> AssetResult:
        """Generate one derived asset and merge it into the bundle.

        Failures propagate after processing clears; the bundle is untouched.
        """
        self._require_idle()
        script = self.state.script
        if script is None:
            raise WizardStateError("Generate a script before requesting assets")
        if kind not in ASSET_FIELDS:
            raise ValueError(f"Unknown asset kind '{kind}'. Choose from: {', '.join(ASSET_FIELDS)}")

        try:
            async with self._busy(f"Generating {kind}..."):
                value = await self.gateway.generate_asset(kind, script)
        except WizardBusyError:
            raise
        except Exception:
            self.state.status = f"Failed to generate {kind}"
            raise

        setattr(self.state.assets, ASSET_FIELDS[kind], value)
        self.state.status = ""
        if self.state.topic is not None:
            self.ledger.upsert(
                self.state.topic,
                self.state.config or script.config,
                script,
                self.state.assets,
            )
        return value

    # ── Navigation & history ─────────────────────────────────────────────────

    async def navigate(self, step: WizardStep) -> bool:
        """Jump to an already-reached step. Refused while processing."""
        if self.state.processing:
            return False
        if step == WizardStep.API_KEY or step > self.state.furthest_step:
            return False
        self.state.step = step
        if step == WizardStep.DISCOVERY:
            await self._maybe_auto_discover()
        return True

    async def back(self) -> bool:
        if self.state.step <= WizardStep.DISCOVERY:
            return False
        return await self.navigate(WizardStep(self.state.step - 1))

    def load_history(self, entry_id: str) -> bool:
        """Replace the whole wizard state with a history snapshot."""
        if self.state.processing:
            return False
        entry = self.ledger.get(entry_id)
        if entry is None:
            raise WizardStateError(f"History entry not found: {entry_id}")
        self.state = WizardState(
            step=WizardStep.SCRIPTING,
            furthest_step=WizardStep.ASSETS,
            topic=entry.topic,
            config=entry.config,
            script=entry.script,
            assets=entry.assets,
            processing=False,
            status=RESTORED_STATUS,
            progress=100,
        )
        return True

    def reset(self) -> None:
        """Start a new composition; the history ledger and topics are kept."""
        self._require_idle()
        step = WizardStep.DISCOVERY if self.state.furthest_step >= WizardStep.DISCOVERY else WizardStep.API_KEY
        self.state = WizardState(step=step, furthest_step=step)
