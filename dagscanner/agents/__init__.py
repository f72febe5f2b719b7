from dagscanner.agents.submission_workflow import SubmissionWorkflow

__all__ = ["SubmissionWorkflow"]
