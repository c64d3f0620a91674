"""SDK-shaped generation."""

from zapforge.sdk.generator import SDK_MANIFEST_NAME, SdkGenerationConfig, run_sdk_generation

__all__ = ["SDK_MANIFEST_NAME", "SdkGenerationConfig", "run_sdk_generation"]
