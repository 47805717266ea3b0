"""Tests for TransformersBackend.

Note: These tests mock the transformers pipeline and the huggingface_hub
cache scanner to avoid downloading models during CI/CD.
"""
from unittest.mock import MagicMock, patch

import pytest

from grounded.services.llm_service.config import OrchestratorConfig
from grounded.services.llm_service.models import (
    ClassificationOptions,
    GenerationOptions,
    ModelCandidate,
    ModelHandle,
    ModelKind,
)
from grounded.services.llm_service.orchestrator import ModelOrchestrator
from grounded.services.llm_service.transformers_backend import (
    TransformersBackend,
    create_orchestrator,
)


@pytest.fixture
def backend():
    return TransformersBackend(device="cpu")


def _handle(kind: ModelKind, runner) -> ModelHandle:
    task = "text2text-generation" if kind == ModelKind.GENERATOR else "sentiment-analysis"
    return ModelHandle(model_id="test-model", kind=kind, task=task, runner=runner)


class TestFromConfig:

    def test_env_settings_reach_backend(self, monkeypatch):
        monkeypatch.setenv("GROUNDED_MODEL_CACHE_DIR", "/models/cache")
        monkeypatch.setenv("GROUNDED_MODEL_DEVICE", "cuda")

        backend = TransformersBackend.from_config(OrchestratorConfig.from_env())

        assert backend.cache_dir == "/models/cache"
        assert backend.device == "cuda"

    def test_create_orchestrator_wires_config(self):
        config = OrchestratorConfig(cache_dir="/tmp/hf", device="cpu")

        orchestrator = create_orchestrator(config)

        assert isinstance(orchestrator, ModelOrchestrator)
        assert orchestrator.config is config
        assert isinstance(orchestrator.backend, TransformersBackend)
        assert orchestrator.backend.cache_dir == "/tmp/hf"

    @pytest.mark.asyncio
    async def test_cache_dir_used_for_load_and_eviction(self):
        backend = TransformersBackend.from_config(OrchestratorConfig(cache_dir="/tmp/hf"))
        candidate = ModelCandidate("m", ModelKind.CLASSIFIER, "sentiment-analysis")
        cache_info = MagicMock()
        cache_info.repos = []

        with patch("transformers.pipeline") as mock_pipeline:
            await backend.load(candidate)
        with patch("huggingface_hub.scan_cache_dir", return_value=cache_info) as mock_scan:
            await backend.clear_cache(["m"])

        assert mock_pipeline.call_args.kwargs["model_kwargs"] == {"cache_dir": "/tmp/hf"}
        mock_scan.assert_called_once_with("/tmp/hf")


class TestLoad:

    @pytest.mark.asyncio
    async def test_builds_pipeline_on_cpu(self, backend):
        candidate = ModelCandidate("MBZUAI/LaMini-Flan-T5-77M", ModelKind.GENERATOR, "text2text-generation")

        with patch("transformers.pipeline") as mock_pipeline:
            mock_pipeline.return_value = "pipe"
            runner = await backend.load(candidate)

        assert runner == "pipe"
        args, kwargs = mock_pipeline.call_args
        assert args == ("text2text-generation",)
        assert kwargs["model"] == "MBZUAI/LaMini-Flan-T5-77M"
        assert kwargs["device"] == -1


class TestRun:

    @pytest.mark.asyncio
    async def test_generator_returns_generated_text(self, backend):
        runner = MagicMock(return_value=[{"generated_text": "SOAP note"}])

        text = await backend.run(_handle(ModelKind.GENERATOR, runner), "prompt", GenerationOptions())

        assert text == "SOAP note"
        _, kwargs = runner.call_args
        assert kwargs["max_new_tokens"] == 2000
        assert kwargs["repetition_penalty"] == 1.3

    @pytest.mark.asyncio
    async def test_classifier_returns_top_label(self, backend):
        runner = MagicMock(return_value=[[{"label": "NEGATIVE", "score": 0.9}]])

        label = await backend.run(_handle(ModelKind.CLASSIFIER, runner), "bad day", ClassificationOptions())

        assert label == "NEGATIVE"

    @pytest.mark.asyncio
    async def test_empty_generation(self, backend):
        runner = MagicMock(return_value=[])

        assert await backend.run(_handle(ModelKind.GENERATOR, runner), "p", GenerationOptions()) == ""

    @pytest.mark.asyncio
    async def test_prompt_truncated(self, backend):
        runner = MagicMock(return_value=[{"generated_text": "ok"}])

        await backend.run(_handle(ModelKind.GENERATOR, runner), "x" * 20000, GenerationOptions())

        args, _ = runner.call_args
        assert len(args[0]) == TransformersBackend.MAX_INPUT_CHARS


class TestClearCache:

    def _repo(self, repo_id, hashes):
        repo = MagicMock()
        repo.repo_id = repo_id
        repo.repo_type = "model"
        repo.revisions = [MagicMock(commit_hash=h) for h in hashes]
        return repo

    @pytest.mark.asyncio
    async def test_deletes_only_requested_models(self, backend):
        cache_info = MagicMock()
        cache_info.repos = [
            self._repo("MBZUAI/LaMini-Flan-T5-77M", ["aaa", "bbb"]),
            self._repo("unrelated/model", ["ccc"]),
        ]
        strategy = MagicMock()
        cache_info.delete_revisions.return_value = strategy

        with patch("huggingface_hub.scan_cache_dir", return_value=cache_info):
            await backend.clear_cache(["MBZUAI/LaMini-Flan-T5-77M"])

        cache_info.delete_revisions.assert_called_once_with("aaa", "bbb")
        strategy.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_nothing_cached(self, backend):
        cache_info = MagicMock()
        cache_info.repos = []

        with patch("huggingface_hub.scan_cache_dir", return_value=cache_info):
            await backend.clear_cache(["MBZUAI/LaMini-Flan-T5-77M"])

        cache_info.delete_revisions.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_failure_propagates(self, backend):
        cache_info = MagicMock()
        cache_info.repos = [self._repo("m", ["aaa"])]
        cache_info.delete_revisions.return_value.execute.side_effect = OSError("locked")

        with patch("huggingface_hub.scan_cache_dir", return_value=cache_info):
            with pytest.raises(OSError):
                await backend.clear_cache(["m"])
