"""FlinkApplication resource types, a type registry and integration-test helpers."""

__version__ = "0.1.0"
__all__ = ["scheme", "v1alpha1", "v1beta1", "testutil"]