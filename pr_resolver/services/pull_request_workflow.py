"""
Pull request resolution workflow.

Drives a change set from a resolved pull request (declined, merged or
deleted) to its next lifecycle state:

1. validate the event and extract the change-set id
2. classify the action label
3. load the change set, clear its pull-request flag, load the run
4. resolve the merge commit when a merge arrives without one
5. rebind the run to the merge commit
6. reject the change set, or delete the feature branch and either queue a
   deployment or ask for a manual one

Collaborators are injected so each can be replaced in tests.
"""

from typing import Optional, Protocol

from pr_resolver.models.api_response import WorkflowOutcome, WorkflowResult
from pr_resolver.models.change_set import ChangeSetRecord, ChangeSetStatus
from pr_resolver.models.pull_request import PullRequestEvent
from pr_resolver.models.run import RunConfig, RunRecord
from pr_resolver.services.action_classifier import PullRequestAction, classify_action
from pr_resolver.services.errors import (
    ChangeSetNotFound,
    MissingConfiguration,
    PullRequestEventError,
    RunNotFound,
)
from pr_resolver.services.event_validator import validate_event
from pr_resolver.services.notifier import update_set_link
from pr_resolver.utils.logging import (
    ContextLoggerAdapter,
    get_logger,
    log_error_with_context,
    log_pull_request_event,
    log_stage_transition,
)

logger = get_logger(__name__)

# Statuses after which the change set needs nothing more from a pull request event
RESOLVED_STATUSES = frozenset({ChangeSetStatus.COMPLETE, ChangeSetStatus.CODE_REVIEW_REJECTED})


class ChangeSetStore(Protocol):
    async def find_change_set(self, change_set_id: str) -> Optional[ChangeSetRecord]: ...

    async def update_change_set(self, record: ChangeSetRecord) -> None: ...


class RunStore(Protocol):
    async def get_run(self, run_id: str) -> Optional[RunRecord]: ...

    async def update_run(self, record: RunRecord) -> None: ...


class MergeBaseSource(Protocol):
    async def resolve(self, run: RunRecord, step=None) -> str: ...


class BranchRemover(Protocol):
    async def delete_branch(self, config: RunConfig, branch_name: str) -> None: ...


class Notifier(Protocol):
    async def send(self, text: str) -> None: ...


class Deployer(Protocol):
    async def run(self, commit_id: Optional[str], deploy: bool = True, run_id: Optional[str] = None) -> None: ...

    async def is_queued(self, run_id: str) -> bool: ...


class StepLog(Protocol):
    async def record(self, run_id: str, config: RunConfig, message: str, error: Optional[Exception] = None) -> None: ...


class PullRequestWorkflow:
    """Processes one pull request event at a time; holds no per-event state."""

    def __init__(
        self,
        change_sets: ChangeSetStore,
        runs: RunStore,
        merge_base_resolver: MergeBaseSource,
        branch_cleaner: BranchRemover,
        notifier: Notifier,
        deployment_trigger: Deployer,
        step_recorder: StepLog,
        integration_branch: str = "master",
    ):
        self.change_sets = change_sets
        self.runs = runs
        self.merge_base_resolver = merge_base_resolver
        self.branch_cleaner = branch_cleaner
        self.notifier = notifier
        self.deployment_trigger = deployment_trigger
        self.step_recorder = step_recorder
        self.integration_branch = integration_branch

    async def process(self, event: PullRequestEvent) -> WorkflowResult:
        """
        Process a pull request event.

        Args:
            event: Event from the webhook

        Returns:
            WorkflowResult describing the terminal outcome

        Raises:
            PullRequestEventError: Any failure; partial progress is kept
        """
        validated = validate_event(event, self.integration_branch)
        change_set_id = validated.change_set_id
        action = classify_action(event.action)
        log = logger.with_context(change_set_id=change_set_id, action=action.value)

        log_pull_request_event(log, change_set_id, event.action, event.source.branch)

        if action is PullRequestAction.IGNORE:
            log.info(f"Ignoring pull request action {event.action!r}")
            return WorkflowResult(
                outcome=WorkflowOutcome.IGNORED,
                change_set_id=change_set_id,
                message=f"Action {event.action!r} not processed",
            )

        try:
            return await self._resolve(event, change_set_id, action, log)
        except PullRequestEventError as e:
            log_error_with_context(log, f"Pull request event failed: {e}", e)
            raise

    async def _resolve(
        self,
        event: PullRequestEvent,
        change_set_id: str,
        action: PullRequestAction,
        log: ContextLoggerAdapter,
    ) -> WorkflowResult:
        change_set = await self._resolve_change_set(change_set_id, log)
        run = await self._load_run(change_set)
        log = log.with_context(run_id=run.id)

        if await self._already_resolved(change_set, run):
            log.info("Pull request already resolved, nothing to do")
            return WorkflowResult(
                outcome=WorkflowOutcome.ALREADY_RESOLVED,
                change_set_id=change_set_id,
                message="Pull request was already resolved",
            )

        if action is PullRequestAction.MERGE:
            if self._already_rebound(run, event.merge_id):
                log.info(f"Run already rebound to {run.commit_id}")
            else:
                merge_id = event.merge_id
                if not merge_id:
                    log_stage_transition(log, "merge_base", "started")
                    merge_id = await self.merge_base_resolver.resolve(
                        run, step=lambda message: self._step(run, f"merge_base : {message}")
                    )
                    log_stage_transition(log, "merge_base", "completed")
                await self._rebind_commit(run, merge_id, log)

        return await self._dispatch(event, action, change_set, run, log)

    async def _resolve_change_set(self, change_set_id: str, log: ContextLoggerAdapter) -> ChangeSetRecord:
        """Load the change set and clear its pull-request flag."""
        log_stage_transition(log, "change_set", "started")

        change_set = await self.change_sets.find_change_set(change_set_id)
        if change_set is None or not change_set.run_id:
            raise ChangeSetNotFound(f"UpdateSet or Run not found with ID {change_set_id}")

        change_set.pull_request_raised = False
        await self.change_sets.update_change_set(change_set)

        log_stage_transition(log, "change_set", "completed")
        return change_set

    async def _already_resolved(self, change_set: ChangeSetRecord, run: RunRecord) -> bool:
        """
        Whether an earlier delivery already reached a terminal outcome.

        Rejection and manual completion leave a status behind; a triggered
        deployment leaves a queued job for the run.
        """
        if change_set.status in RESOLVED_STATUSES:
            return True
        return await self.deployment_trigger.is_queued(run.id)

    @staticmethod
    def _already_rebound(run: RunRecord, merge_id: Optional[str]) -> bool:
        # branch_commit_id is only set by a rebind
        if run.branch_commit_id is None:
            return False
        return merge_id is None or merge_id == run.commit_id

    async def _load_run(self, change_set: ChangeSetRecord) -> RunRecord:
        run = await self.runs.get_run(change_set.run_id)
        if run is None:
            raise RunNotFound(f"Run not found with ID {change_set.run_id}")
        if run.config is None:
            raise MissingConfiguration(f"No configuration found for run {run.id}")
        return run

    async def _rebind_commit(self, run: RunRecord, merge_id: str, log: ContextLoggerAdapter) -> None:
        """Point the run at the merge commit, keeping the branch head."""
        if run.branch_commit_id is None:
            run.branch_commit_id = run.commit_id
        run.commit_id = merge_id
        await self.runs.update_run(run)
        log.info(f"Run commit rebound from {run.branch_commit_id} to {merge_id}")

    async def _step(self, run: RunRecord, message: str) -> None:
        await self.step_recorder.record(run.id, run.config, message)

    async def _set_status(self, change_set: ChangeSetRecord, status: ChangeSetStatus) -> None:
        change_set.status = status
        await self.change_sets.update_change_set(change_set)

    async def _dispatch(
        self,
        event: PullRequestEvent,
        action: PullRequestAction,
        change_set: ChangeSetRecord,
        run: RunRecord,
        log: ContextLoggerAdapter,
    ) -> WorkflowResult:
        config = run.config
        update_set_name = config.update_set.name
        log_stage_transition(log, "dispatch", "started")

        if action is not PullRequestAction.MERGE:
            await self._step(
                run,
                f"process : pull request result for '{update_set_name}' is '{event.action}' "
                f"set update-set status to '{ChangeSetStatus.CODE_REVIEW_REJECTED.value}'"
            )
            await self._set_status(change_set, ChangeSetStatus.CODE_REVIEW_REJECTED)
            return WorkflowResult(
                outcome=WorkflowOutcome.REJECTED,
                change_set_id=change_set.update_set_id,
                message=f"Update set {update_set_name} rejected",
            )

        await self.branch_cleaner.delete_branch(config, config.branch_name)

        if config.deploy is None or not config.deploy.enabled:
            reason = "Pull request merged, but not deployment target environment specified"
            return await self._complete_manually(change_set, run, reason)

        if not config.deploy.on_pull_request_resolve:
            reason = "Pull request merged, but deployment 'onPullRequestResolve' is disabled"
            return await self._complete_manually(change_set, run, reason)

        await self._step(run, f"process : deploy update-set {update_set_name}")
        await self.deployment_trigger.run(config.build.commit_id, deploy=True, run_id=run.id)

        return WorkflowResult(
            outcome=WorkflowOutcome.DEPLOYMENT_TRIGGERED,
            change_set_id=change_set.update_set_id,
            message=f"Deployment of update set {update_set_name} triggered",
        )

    async def _complete_manually(
        self,
        change_set: ChangeSetRecord,
        run: RunRecord,
        reason: str,
    ) -> WorkflowResult:
        config = run.config
        await self._step(run, f"process : {reason}.")
        await self._step(run, f"process : complete update-set {config.update_set.name}")
        await self._set_status(change_set, ChangeSetStatus.COMPLETE)
        await self.notifier.send(
            f"{reason}. Update-Set {update_set_link(config)} needs to be deployed manually!"
        )
        return WorkflowResult(
            outcome=WorkflowOutcome.MANUAL_DEPLOYMENT_REQUIRED,
            change_set_id=change_set.update_set_id,
            message=reason,
        )


def create_pull_request_workflow(redis_client=None, app_settings=None) -> PullRequestWorkflow:
    """
    Build the workflow from application settings and the shared Redis client.
    """
    from pr_resolver.config import settings as default_settings
    from pr_resolver.services.branch_cleaner import BranchCleaner
    from pr_resolver.services.deployment_trigger import DeploymentTrigger
    from pr_resolver.services.merge_base_resolver import MergeBaseResolver
    from pr_resolver.services.notifier import SlackNotifier
    from pr_resolver.services.redis_client import get_redis_client
    from pr_resolver.services.step_recorder import StepRecorder

    app_settings = app_settings or default_settings
    redis_client = redis_client or get_redis_client()

    git_options = dict(
        workspace_root=app_settings.workspace_root,
        git_timeout=app_settings.git_timeout_seconds,
        user_name=app_settings.cicd_git_user_name,
        user_email=app_settings.cicd_git_user_email,
    )

    return PullRequestWorkflow(
        change_sets=redis_client,
        runs=redis_client,
        merge_base_resolver=MergeBaseResolver(
            integration_branch=app_settings.integration_branch,
            **git_options,
        ),
        branch_cleaner=BranchCleaner(**git_options),
        notifier=SlackNotifier(
            webhook_url=app_settings.slack_webhook_url,
            timeout=app_settings.notification_timeout_seconds,
        ),
        deployment_trigger=DeploymentTrigger(redis_client),
        step_recorder=StepRecorder(redis_client),
        integration_branch=app_settings.integration_branch,
    )
