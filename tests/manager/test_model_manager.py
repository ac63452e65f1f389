import asyncio
from unittest.mock import patch

import pytest

from saltcore.models.manager import ModelManager, DEFAULT_CONFIG_PATH
from saltcore.models.providers.base import ModelError
from saltcore.models.providers.ideogram import IdeogramProvider
from saltcore.models.providers.openai_sdk import OpenAIProvider
from saltcore.models.providers.replicate import ReplicateProvider
from saltcore.pipeline.errors import PollTimeoutError
from saltcore.pipeline.jobs.types import PollOptions


class TestModelManager:
    """Test suite for ModelManager functionality"""

    @pytest.fixture
    def valid_config(self, tmp_path):
        """Create a valid config file for testing"""
        config_content = """
providers:
  openai:
    type: openai
    settings:
      api_key: sk-test

  replicate:
    type: replicate
    settings:
      api_token: r8-test

tasks:
  describe:
    provider: openai
    model: "gpt-4o"
    prompt: "demo/describe@v1"
    params:
      temperature: 0.1

  render:
    provider: replicate
    model: "google/imagen-4-fast"
    kind: text-to-image
    params:
      aspect_ratio: "16:9"
    poll:
      interval: 2.0
      max_polls: 4
      timeout: 30
"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(config_content)
        return config_file

    @pytest.fixture
    def prompts_dir(self, tmp_path):
        """Create a prompts directory with one prompt"""
        prompt = tmp_path / "prompts" / "demo" / "describe" / "v1"
        prompt.mkdir(parents=True)
        (prompt / "config.yaml").write_text("stop_sequences: ['###']\n")
        (prompt / "system.j2").write_text("You describe images.")
        (prompt / "user.j2").write_text("Describe: {{ subject }}")
        return tmp_path / "prompts"

    @pytest.fixture
    def manager(self, valid_config, prompts_dir, fake_clock):
        return ModelManager(valid_config, prompts_dir, sleep=fake_clock.sleep, clock=fake_clock)

    def test_initialization(self, manager, valid_config):
        """
        Test: Successful ModelManager initialization
        How: Create manager with valid config and prompts directory
        Ensures: Providers are created lazily and stats start empty
        """
        assert manager.config_path == valid_config
        assert manager._providers == {}
        assert manager.get_stats() == {}

    def test_default_config_is_shipped(self):
        manager = ModelManager()
        assert manager.config_path == DEFAULT_CONFIG_PATH
        assert "sermon_angles" in manager.config["tasks"]
        assert manager.task("sermon_image").poll == PollOptions(interval=1.0, max_polls=60, timeout=90)

    def test_config_path_from_environment(self, valid_config, prompts_dir, monkeypatch):
        monkeypatch.setenv("SALTCORE_CONFIG", str(valid_config))
        assert ModelManager(prompts_dir=prompts_dir).config_path == valid_config

    def test_missing_config(self, tmp_path, prompts_dir):
        with pytest.raises(FileNotFoundError):
            ModelManager(tmp_path / "missing.yaml", prompts_dir)

    @pytest.mark.parametrize("content,message", [
        ("tasks: {}\n", "providers"),
        ("providers: {}\n", "tasks"),
        ("providers: {p: {type: openai}}\ntasks: {t: {model: m}}\n", "missing provider"),
        ("providers: {p: {type: openai}}\ntasks: {t: {provider: p}}\n", "missing model"),
        ("providers: {p: {type: openai}}\ntasks: {t: {provider: q, model: m}}\n", "unknown provider"),
    ])
    def test_invalid_config(self, tmp_path, prompts_dir, content, message):
        path = tmp_path / "bad.yaml"
        path.write_text(content)
        with pytest.raises(ValueError, match=message):
            ModelManager(path, prompts_dir)

    def test_task_config(self, manager):
        task = manager.task("render")
        assert task.kind == "text-to-image"
        assert task.poll == PollOptions(interval=2.0, max_polls=4, timeout=30)
        assert task.max_attempts == 3

        with pytest.raises(ValueError, match="Unknown task"):
            manager.task("nope")

    def test_providers_are_built_from_type(self, manager):
        assert isinstance(manager._get_provider("openai"), OpenAIProvider)
        assert isinstance(manager._get_provider("replicate"), ReplicateProvider)
        assert manager._get_provider("openai") is manager._get_provider("openai")

    def test_ideogram_provider_type(self, tmp_path, prompts_dir):
        path = tmp_path / "c.yaml"
        path.write_text("providers: {ideo: {type: ideogram, settings: {api_key: k}}}\ntasks: {t: {provider: ideo, model: ideogram-v3}}\n")
        assert isinstance(ModelManager(path, prompts_dir)._get_provider("ideo"), IdeogramProvider)

    def test_call_renders_prompt_and_tracks_stats(self, manager, stub_vendor):
        vendor = stub_vendor(replies=["a red barn"])
        manager._providers["openai"] = vendor

        response = asyncio.run(manager.call("describe", variables={"subject": "barn.png"}, temperature=0.7))

        assert response.content == "a red barn"
        request = vendor.chat_requests[0]
        assert request.model == "gpt-4o"
        assert request.messages[-1] == {"role": "user", "content": "Describe: barn.png"}
        assert request.params == {"temperature": 0.7, "stop": ["###"]}
        assert manager.get_stats("describe")["successful_calls"] == 1

    def test_failed_call_is_tracked(self, manager, stub_vendor):
        manager._providers["openai"] = stub_vendor(replies=[ModelError("boom")])
        with pytest.raises(ModelError):
            asyncio.run(manager.call("describe", variables={"subject": "x"}))

        stats = manager.get_stats("describe")
        assert stats["total_calls"] == 1
        assert stats["successful_calls"] == 0

    def test_job_task_cannot_chat(self, manager):
        with pytest.raises(ValueError):
            asyncio.run(manager.call("render", messages_override=[{"role": "user", "content": "x"}]))

    def test_run_job_uses_task_poll_options(self, manager, stub_vendor, snapshot, fake_clock):
        """
        Test: Job task with its own poll block
        How: Vendor never finishes; config says 4 polls at 2s
        Ensures: The engine stops after 4 fetches and params are merged into the job input
        """
        vendor = stub_vendor(snapshots=[snapshot("starting"), snapshot("processing")])
        manager._providers["replicate"] = vendor

        with pytest.raises(PollTimeoutError):
            asyncio.run(manager.run_job("render", {"prompt": "a barn"}))

        assert vendor.fetches == 4
        assert fake_clock.sleeps == [2.0] * 4
        assert vendor.job_requests[0].input == {"aspect_ratio": "16:9", "prompt": "a barn"}
        assert manager.get_stats("render")["successful_calls"] == 0

    def test_run_job_overrides(self, manager, stub_vendor, snapshot):
        vendor = stub_vendor(snapshots=[snapshot("starting"), snapshot("processing")])
        manager._providers["replicate"] = vendor
        with pytest.raises(PollTimeoutError):
            asyncio.run(manager.run_job("render", {"prompt": "x"}, max_polls=1))
        assert vendor.fetches == 1

    def test_respond_requires_openai(self, manager, stub_vendor):
        manager._providers["openai"] = stub_vendor()
        with pytest.raises(ValueError):
            asyncio.run(manager.respond("describe", {"subject": "x"}))

    def test_aclose_closes_providers(self, manager, stub_vendor):
        vendor = stub_vendor()
        manager._providers["openai"] = vendor

        async def scenario():
            async with manager.session():
                pass
        asyncio.run(scenario())

        assert vendor.closed
        assert manager._providers == {}

    def test_download_errors_become_model_errors(self, make_manager):
        manager = make_manager()
        with pytest.raises(ModelError) as exc_info:
            asyncio.run(manager.download("https://cdn.example/none.png"))
        assert exc_info.value.status_code == 404


@patch.dict("os.environ", {"OPENAI_API_KEY": "sk-env"})
def test_openai_key_from_environment():
    provider = OpenAIProvider(api_key_env="OPENAI_API_KEY")
    assert provider.client.api_key == "sk-env"
