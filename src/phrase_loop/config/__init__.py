from .settings import PhraseLoopConfig, create_example_env_file, load_config, setup_logging

__all__ = ["PhraseLoopConfig", "create_example_env_file", "load_config", "setup_logging"]
