"""
Chat completion services package.

Obtains a completion for a user message from one of several interchangeable
remote backends:

- registry: static catalogue of backends and their credentials
- adapters: one wire-format translator per backend family
- cooldown: suppression of rate-limited backends
- orchestration: selection, invocation and fallback
- telemetry: fire-and-forget usage events
"""
