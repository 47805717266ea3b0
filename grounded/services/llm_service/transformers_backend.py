"""HuggingFace Transformers backend for on-device models.

Pipelines are built and run in worker threads so the event loop never
blocks on model download, initialization or inference.

Note: the first load of a candidate downloads weights into the local
huggingface_hub cache. Later loads read from disk.
"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

from .config import OrchestratorConfig
from .models import (
    ClassificationOptions,
    GenerationOptions,
    InvocationOptions,
    ModelBackend,
    ModelCandidate,
    ModelHandle,
    ModelKind,
)
from .orchestrator import ModelOrchestrator

logger = logging.getLogger(__name__)


class TransformersBackend(ModelBackend):
    """Loads `transformers.pipeline` objects and evicts their cache entries."""

    MAX_INPUT_CHARS = 8000  # Rough char limit before tokenization

    def __init__(self, device: str = "cpu", cache_dir: Optional[str] = None):
        """Initialize backend.

        Args:
            device: Device for inference ("cpu" or "cuda")
            cache_dir: Model cache directory (default: huggingface_hub default)
        """
        self.device = device
        self.cache_dir = cache_dir

    @classmethod
    def from_config(cls, config: OrchestratorConfig) -> "TransformersBackend":
        """Backend using the device and cache directory of an orchestrator config."""
        return cls(device=config.device, cache_dir=config.cache_dir)

    async def load(self, candidate: ModelCandidate) -> Any:
        return await asyncio.to_thread(self._build_pipeline, candidate)

    def _build_pipeline(self, candidate: ModelCandidate) -> Any:
        from transformers import pipeline

        logger.info(
            "TRANSFORMERS_PIPELINE_LOADING",
            extra={
                "model_id": candidate.model_id,
                "task": candidate.task,
                "device": self.device,
            }
        )

        model_kwargs = {"cache_dir": self.cache_dir} if self.cache_dir else {}
        return pipeline(
            candidate.task,
            model=candidate.model_id,
            device=-1 if self.device == "cpu" else 0,  # -1 for CPU
            model_kwargs=model_kwargs,
        )

    async def run(
        self,
        handle: ModelHandle,
        prompt: str,
        options: InvocationOptions,
    ) -> str:
        truncated = prompt[:self.MAX_INPUT_CHARS]
        if handle.kind == ModelKind.GENERATOR:
            return await asyncio.to_thread(self._generate, handle.runner, truncated, options)
        return await asyncio.to_thread(self._classify, handle.runner, truncated, options)

    @staticmethod
    def _generate(runner: Any, prompt: str, options: GenerationOptions) -> str:
        outputs = runner(prompt, **options.to_kwargs())
        if not outputs:
            return ""
        return outputs[0].get("generated_text", "")

    @staticmethod
    def _classify(runner: Any, prompt: str, options: ClassificationOptions) -> str:
        outputs = runner(prompt, **options.to_kwargs())
        # Single-string input returns either [{...}] or [[{...}]] by version
        while isinstance(outputs, list) and outputs and isinstance(outputs[0], list):
            outputs = outputs[0]
        if not outputs:
            return ""
        return str(outputs[0].get("label", ""))

    async def clear_cache(self, model_ids: Sequence[str]) -> None:
        await asyncio.to_thread(self._delete_cached_revisions, list(model_ids))

    def _delete_cached_revisions(self, model_ids: List[str]) -> None:
        from huggingface_hub import scan_cache_dir
        from huggingface_hub.utils import CacheNotFound

        try:
            cache_info = scan_cache_dir(self.cache_dir)
        except CacheNotFound:
            logger.info("MODEL_CACHE_EMPTY", extra={"cache_dir": self.cache_dir})
            return

        wanted = set(model_ids)
        revisions = [
            revision.commit_hash
            for repo in cache_info.repos
            if repo.repo_type == "model" and repo.repo_id in wanted
            for revision in repo.revisions
        ]
        if not revisions:
            return

        strategy = cache_info.delete_revisions(*revisions)
        logger.info(
            "MODEL_CACHE_DELETING",
            extra={
                "model_ids": sorted(wanted),
                "revision_count": len(revisions),
                "freed_size": strategy.expected_freed_size_str,
            }
        )
        strategy.execute()


def create_orchestrator(config: Optional[OrchestratorConfig] = None) -> ModelOrchestrator:
    """Factory function for an orchestrator backed by transformers.

    Args:
        config: Orchestrator configuration (default: OrchestratorConfig.from_env())

    Returns:
        ModelOrchestrator whose backend uses the config's device and cache_dir
    """
    config = config or OrchestratorConfig.from_env()
    return ModelOrchestrator(TransformersBackend.from_config(config), config)
