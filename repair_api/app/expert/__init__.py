from .client import DiagnosisOutcome, ExpertLLMClient, LlmDiagnosis, LlmFailed, LlmOk

__all__ = ["DiagnosisOutcome", "ExpertLLMClient", "LlmDiagnosis", "LlmFailed", "LlmOk"]
