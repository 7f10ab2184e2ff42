"""Release pipeline orchestrator.

One release walks ``start → versioned → bumped → changelogged → staged →
released → (dist-released) → done``. Each state has a handler driven by
``run_state_machine``; a handler returning ``Err`` moves the current
``PipelineRun`` to ``failed`` and stops the release.

The release stages (commit, tag, push, remote releases, publish) are one
function, ``_release``, parameterized by a ``PipelineRun``: the primary
repository first, then, when ``dist.repo`` is configured, a cloned
distribution checkout. A failed distribution pass never undoes the primary
one.

In the interactive, clean-working-dir configuration a run that stops before
the primary commit (interrupt, abort or failed stage) resets the bumped
manifests.

Changelog timing: a recommended version (``conventional``) computes the
changelog before the manifests are bumped; an explicit version computes it
after the bump.

Usage:
    pipeline = ReleasePipeline(config, console=RichConsole(), root=Path.cwd())
    match pipeline.run():
        case Ok(outcome):
            print(outcome.version)
        case Err(error):
            print(pipeline.failed_run.failed_stage)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from relkit.core.config import ConfigError, ReleaseConfig
from relkit.core.context import ReleaseContext
from relkit.core.result import Err, Ok, Result
from relkit.git.client import GitClient, GitError
from relkit.git.dist import DistGitClient
from relkit.output.console import ConsoleProtocol, Style
from relkit.release.cancel import CancellationToken, interrupt_scope
from relkit.release.changelog import Changelog
from relkit.release.errors import ReleaseError
from relkit.release.fsm import FINISH, StepAdvance, StepFinish, advance, run_state_machine
from relkit.release.hosting import GitHubClient, GitLabClient, HostingClient
from relkit.release.prompt import Prompter, TyperPrompter
from relkit.release.registry import NpmClient, PublishTask, RegistryClient
from relkit.shell.manifest import read_manifest_version
from relkit.shell.runner import CommandRunner
from relkit.version.recommend import RecommendationEngine
from relkit.version.resolver import VersionDecision, VersionError, VersionResolver, is_recommendation

__all__ = [
    "PipelineError",
    "PipelineRun",
    "PipelineState",
    "ReleaseOutcome",
    "ReleasePipeline",
    "describe_error",
]

logger = logging.getLogger(__name__)

PipelineState = Literal[
    "start",
    "versioned",
    "bumped",
    "changelogged",
    "staged",
    "released",
    "dist-released",
    "done",
    "failed",
]
RunLabel = Literal["primary", "distribution"]
PipelineError = ConfigError | GitError | VersionError | ReleaseError

_DECISION_FIELDS = frozenset({"latest_version", "increment", "pre_release_id", "version", "is_pre_release"})

StepResult = Result[StepAdvance[PipelineState] | StepFinish, PipelineError]


@dataclass(slots=True)
class PipelineRun:
    """One pass of the release stages over one repository.

    Attributes:
        state: Last state reached (``failed`` after an error).
        failed_stage: State or release stage that failed, if any.
    """

    label: RunLabel
    git: GitClient
    after_release: str | None = None
    github: HostingClient | None = None
    gitlab: HostingClient | None = None
    npm: RegistryClient | None = None
    state: PipelineState = "start"
    failed_stage: str | None = None

    def collaborators(self) -> tuple[HostingClient, HostingClient, RegistryClient]:
        if self.github is None or self.gitlab is None or self.npm is None:
            raise RuntimeError(f"{self.label} run has no collaborators attached")
        return self.github, self.gitlab, self.npm


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    name: str
    changelog: str | None
    latest_version: str
    version: str


def describe_error(error: PipelineError) -> str:
    hint = getattr(error, "hint", None)
    return f"{error.message} ({hint})" if hint else error.message


class ReleasePipeline:
    """Runs a release for the repository at ``root``.

    Attributes:
        primary: The primary run.
        distribution: The distribution run, once the dist pass started.
        failed_run: The run that failed, if any.
        changelog: Changelog computed for this release.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        *,
        console: ConsoleProtocol,
        root: Path,
        prompter: Prompter | None = None,
        token: CancellationToken | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.config = config
        self.root = root.resolve()
        self.token = token or CancellationToken()
        self.context = ReleaseContext(config)
        self.runner = runner or CommandRunner(
            cwd=self.root,
            console=console,
            dry_run=config.dry_run,
            verbose=config.verbose,
        )
        self.runner.set_context(self.context)
        self.git = GitClient(config.git, runner=self.runner, console=console, cwd=self.root)
        self.resolver = VersionResolver(pre_release_id=config.pre_release_id)
        self.changelog: str | None = None
        self.primary = PipelineRun(label="primary", git=self.git, after_release=config.scripts.after_release)
        self.distribution: PipelineRun | None = None
        self.failed_run: PipelineRun | None = None
        self._bumped = False
        self._changelogs = Changelog(self.git)
        self._console = console
        self._prompter = prompter or TyperPrompter(console)

    # ------------------------------------------------------------------
    # entry point
    # ------------------------------------------------------------------

    def run(self) -> Result[ReleaseOutcome, PipelineError]:
        """Run the release; on failure the triggering error is returned as-is."""
        config = self.config
        pkg_files = list(config.pkg_files)
        guarded = config.interactive and config.git.require_clean_working_dir and bool(pkg_files)

        def rollback() -> None:
            if self._bumped and not self.git.is_committed:
                self.git.reset(pkg_files)

        with interrupt_scope(self.token, rollback, enabled=guarded):
            result = run_state_machine(
                initial_state="start",
                get_step=lambda state: state,
                handlers={
                    "start": self._step("start", self._start),
                    "versioned": self._step("versioned", self._bump),
                    "bumped": self._step("bumped", self._late_changelog),
                    "changelogged": self._step("changelogged", self._stage),
                    "staged": self._step("staged", self._release_primary),
                    "released": self._release_distribution,
                    "dist-released": lambda _: Ok(advance("done")),
                    "done": self._done,
                },
                on_advance=self._on_advance,
            )
            if guarded and isinstance(result, Err):
                self.token.cancel()

        if isinstance(result, Err):
            self._report(result.error)
            return result

        decision = self.resolver.decision
        if decision is None or decision.version is None:
            raise RuntimeError("release finished without a version")
        return Ok(
            ReleaseOutcome(
                name=config.name,
                changelog=self.changelog,
                latest_version=decision.latest_version,
                version=decision.version,
            )
        )

    def _step(
        self,
        state: PipelineState,
        handler: Callable[[], Result[PipelineState, PipelineError]],
    ) -> Callable[[PipelineState], StepResult]:
        def run_step(_: PipelineState) -> StepResult:
            result = handler()
            if isinstance(result, Err):
                self._fail(self.primary, state)
                return result
            return Ok(advance(result.value))

        return run_step

    def _on_advance(self, state: PipelineState) -> None:
        logger.debug("pipeline state: %s", state)
        # dist-released belongs to the distribution run
        if state != "dist-released":
            self.primary.state = state

    def _fail(self, run: PipelineRun, stage: str) -> None:
        if run.failed_stage is None:
            run.failed_stage = stage
        run.state = "failed"
        self.failed_run = run

    def _report(self, error: PipelineError) -> None:
        self._console.error(describe_error(error))
        logger.debug("release failed: %r", error)
        run = self.failed_run
        if run is not None:
            self._console.print(f"{run.label} release failed at stage {run.failed_stage}", Style.DIM)

    def _done(self, _: PipelineState) -> StepResult:
        self._console.success("Done")
        return Ok(FINISH)

    # ------------------------------------------------------------------
    # context
    # ------------------------------------------------------------------

    def _update_context(self, *, overwrite: frozenset[str] = frozenset(), **values: object) -> None:
        self.context = self.context.with_runtime(overwrite=overwrite, **values)
        self.runner.set_context(self.context)

    def _run_context(self, run: PipelineRun) -> ReleaseContext:
        if run.label == "primary":
            return self.context
        dist = self.config.dist
        return self.context.for_run(git=run.git.options, github=dist.github, gitlab=dist.gitlab, npm=dist.npm)

    @property
    def decision(self) -> VersionDecision:
        decision = self.resolver.decision
        if decision is None or decision.version is None:
            raise RuntimeError("version has not been decided")
        return decision

    # ------------------------------------------------------------------
    # hooks and changelog
    # ------------------------------------------------------------------

    def _hook(self, command: str | None) -> Result[None, ReleaseError]:
        if not command:
            return Ok(None)
        result = self.runner.run(command)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="hook-failed",
                    message=f"Hook failed: {self.runner.render(command)}",
                    hint=result.error.details or None,
                )
            )
        return Ok(None)

    def _compute_changelog(self) -> Result[None, GitError]:
        result = self._changelogs.create(self.config.scripts.changelog, self.git.latest_tag)
        if isinstance(result, Err):
            return result
        self.changelog = result.value
        self._update_context(changelog=result.value)
        if result.value:
            self._console.preview("changelog", result.value)
        return Ok(None)

    # ------------------------------------------------------------------
    # primary states
    # ------------------------------------------------------------------

    def _collaborators(
        self, run: PipelineRun, *, remote_url: str | None, cwd: Path
    ) -> Result[None, ReleaseError]:
        config = self.config
        is_dist = run.label == "distribution"
        github_options = config.dist.github if is_dist else config.github
        gitlab_options = config.dist.gitlab if is_dist else config.gitlab
        npm_options = config.dist.npm if is_dist else config.npm

        github = GitHubClient(
            github_options,
            run.git.options,
            runner=self.runner,
            console=self._console,
            remote_url=remote_url,
            cwd=cwd,
        )
        gitlab = GitLabClient(
            gitlab_options,
            run.git.options,
            runner=self.runner,
            console=self._console,
            remote_url=remote_url,
            cwd=cwd,
        )
        for client in (github, gitlab):
            checked = client.validate()
            if isinstance(checked, Err):
                return checked

        run.github = github
        run.gitlab = gitlab
        run.npm = NpmClient(npm_options, runner=self.runner, console=self._console, cwd=cwd)
        return Ok(None)

    def _start(self) -> Result[PipelineState, PipelineError]:
        config = self.config
        state = self.git.init()
        validated = self.git.validate()
        if isinstance(validated, Err):
            return validated

        self._update_context(latest_tag=state.latest_tag, remote_url=state.remote_url)

        attached = self._collaborators(self.primary, remote_url=state.remote_url, cwd=self.root)
        if isinstance(attached, Err):
            return attached

        hooked = self._hook(config.scripts.before_start)
        if isinstance(hooked, Err):
            return hooked

        tag_template = config.git.tag_name
        tag_prefix = tag_template.split("${version}")[0] if "${version}" in tag_template else ""
        pkg_version = read_manifest_version(self.root / config.pkg_files[0]) if config.pkg_files else None

        latest = self.resolver.set_latest_version(
            use=config.use,
            git_tag=state.latest_tag,
            pkg_version=pkg_version,
            is_root_dir=state.is_root_dir,
            tag_prefix=tag_prefix,
        )
        bumped = self.resolver.bump(
            config.increment,
            pre_release=config.pre_release,
            recommend=lambda preset: RecommendationEngine(preset).recommend(self.git, state.latest_tag),
        )
        if isinstance(bumped, Err):
            return bumped
        self._update_context(**bumped.value.as_runtime())

        version = bumped.value.version
        suffix = f"{latest}...{version}" if version else f"currently at {latest}"
        self._console.header(f"Let's release {config.name} ({suffix})")

        if config.interactive and version is None:
            chosen = self._prompter.prompt(True, self.context, "increment_list", self._on_increment)
            if isinstance(chosen, Err):
                return chosen

        decided = self.resolver.validate()
        if isinstance(decided, Err):
            return decided
        self._update_context(overwrite=_DECISION_FIELDS, **decided.value.as_runtime())
        return Ok("versioned")

    def _on_increment(self, increment: str | None) -> Result[object, PipelineError]:
        if increment:
            return self.resolver.bump(increment, pre_release=self.config.pre_release)
        return self._prompter.prompt(True, self.context, "version", self.resolver.set_version)

    def _bump(self) -> Result[PipelineState, PipelineError]:
        config = self.config
        if is_recommendation(config.increment):
            early = self._compute_changelog()
            if isinstance(early, Err):
                return early

        hooked = self._hook(config.scripts.before_bump)
        if isinstance(hooked, Err):
            return hooked
        self._bumped = True
        self.runner.bump(list(config.pkg_files), self.decision.version or "")
        hooked = self._hook(config.scripts.after_bump)
        if isinstance(hooked, Err):
            return hooked
        return Ok("bumped")

    def _late_changelog(self) -> Result[PipelineState, PipelineError]:
        if not is_recommendation(self.config.increment):
            late = self._compute_changelog()
            if isinstance(late, Err):
                return late
        return Ok("changelogged")

    def _stage(self) -> Result[PipelineState, PipelineError]:
        hooked = self._hook(self.config.scripts.before_stage)
        if isinstance(hooked, Err):
            return hooked
        self.git.stage(list(self.config.pkg_files))
        self.git.stage_dir()
        return Ok("staged")

    def _release_primary(self) -> Result[PipelineState, PipelineError]:
        released = self._release(self.primary)
        if isinstance(released, Err):
            return released
        return Ok("released")

    # ------------------------------------------------------------------
    # release stages (shared by both runs)
    # ------------------------------------------------------------------

    def _release(self, run: PipelineRun) -> Result[None, PipelineError]:
        context = self._run_context(run)
        self.runner.set_context(context)
        try:
            return self._release_stages(run, context)
        finally:
            self.runner.set_context(self.context)

    def _release_stages(self, run: PipelineRun, context: ReleaseContext) -> Result[None, PipelineError]:
        git = run.git
        github, gitlab, npm = run.collaborators()
        options = context.config
        decision = self.decision
        version = decision.version or ""
        changelog = self.changelog

        def gh_release() -> Result[bool, ReleaseError]:
            return github.release(
                version=version,
                is_pre_release=decision.is_pre_release,
                changelog=changelog,
                tag_name=git.tag_name,
            )

        def gh_release_and_upload() -> Result[bool, ReleaseError]:
            released = gh_release()
            if isinstance(released, Err) or not released.value:
                return released
            return github.upload_assets()

        def gl_release() -> Result[bool, ReleaseError]:
            released = gitlab.release(
                version=version,
                is_pre_release=decision.is_pre_release,
                changelog=changelog,
                tag_name=git.tag_name,
            )
            if isinstance(released, Err) or not released.value:
                return released
            return gitlab.upload_assets()

        def otp_prompt(task: PublishTask) -> Result[bool, ReleaseError]:
            return self._prompter.prompt(True, context, "otp", task).map(lambda _: True)

        def publish() -> Result[bool, ReleaseError]:
            return npm.publish(
                version=version,
                is_pre_release=decision.is_pre_release,
                otp_prompt=otp_prompt if self.config.interactive else None,
            )

        self._console.preview("changeset", git.status())

        stages: list[tuple[str, bool, str | None, Callable[[], Result[object, PipelineError]]]] = [
            ("commit", options.git.commit, "commit", git.commit),
            ("tag", options.git.tag, "tag", git.tag),
            ("push", options.git.push, "push", git.push),
        ]
        notes_stages: dict[str, HostingClient] = {}
        if self.config.interactive:
            stages += [
                ("github release", options.github.release, "gh_release", gh_release_and_upload),
                ("gitlab release", options.gitlab.release, "gl_release", gl_release),
            ]
        else:
            stages += [
                ("github release", options.github.release, None, gh_release),
                ("github assets", options.github.release and bool(options.github.assets), None, github.upload_assets),
                ("gitlab release", options.gitlab.release, None, gl_release),
            ]
        stages.append(("npm publish", npm.enabled, "publish", publish))
        if options.github.release and options.github.release_notes:
            notes_stages["github release"] = github
        if options.gitlab.release and options.gitlab.release_notes:
            notes_stages["gitlab release"] = gitlab

        for name, enabled, prompt_name, task in stages:
            if enabled and name in notes_stages:
                notes = notes_stages[name].get_notes()
                if isinstance(notes, Err):
                    self._fail(run, name)
                    return notes
                if notes.value:
                    self._console.preview("release notes", notes.value)

            if self.config.interactive and prompt_name is not None:
                outcome: Result[object, PipelineError] = self._prompter.prompt(
                    enabled, context, prompt_name, lambda _answer, task=task: task()
                )
            elif enabled:
                outcome = task()
            else:
                continue

            if isinstance(outcome, Err):
                self._fail(run, name)
                return outcome

        hooked = self._hook(run.after_release)
        if isinstance(hooked, Err):
            self._fail(run, "after_release")
            return hooked

        for client in (github, gitlab):
            url = client.get_release_url()
            if client.is_released and url:
                self._console.info(url)
        if npm.is_published and (package_url := npm.get_package_url()):
            self._console.info(package_url)
        return Ok(None)

    # ------------------------------------------------------------------
    # distribution pass
    # ------------------------------------------------------------------

    def _release_distribution(self, _: PipelineState) -> StepResult:
        dist = self.config.dist
        if not dist.enabled or dist.repo is None:
            return Ok(advance("done"))

        self._console.header(f"Let's release the distribution repo for {self.config.name}")
        stage_dir = Path(dist.stage_dir)
        # only a directory this run cloned is removed afterwards
        if (self.root / stage_dir).exists():
            self._fail(self._dist_placeholder(stage_dir), "clone")
            return Err(
                ReleaseError(
                    kind="release-failed",
                    message=f"Stage directory {dist.stage_dir} already exists",
                    hint="Remove it or point dist.stage_dir at a new directory.",
                )
            )

        cloned = self.git.clone(dist.repo, stage_dir)
        if isinstance(cloned, Err):
            self._fail(self._dist_placeholder(stage_dir), "clone")
            return cloned

        try:
            result = self._distribution_pass(stage_dir)
        finally:
            self.runner.run(f"!rm -rf {dist.stage_dir}", cwd=self.root)

        if isinstance(result, Err):
            return result
        return Ok(advance("dist-released"))

    def _distribution_pass(self, stage_dir: Path) -> Result[None, PipelineError]:
        dist = self.config.dist
        version = self.decision.version or ""

        copied = self.runner.copy(dist.files, stage_dir, cwd=Path(dist.base_dir))
        if isinstance(copied, Err):
            self._fail(self._dist_placeholder(stage_dir), "copy")
            return Err(
                ReleaseError(
                    kind="release-failed",
                    message=f"Could not copy {dist.base_dir} into {dist.stage_dir}",
                    hint=copied.error.details or None,
                )
            )

        if self.runner.dry_run:
            self._console.info("Dry run: distribution release stages skipped")
            return Ok(None)

        with self.runner.scoped(stage_dir) as checkout:
            dist_git = DistGitClient(
                dist.git,
                runner=self.runner,
                console=self._console,
                cwd=checkout,
                explicit_keys=dist.explicit_git_keys,
            )
            run = PipelineRun(label="distribution", git=dist_git, after_release=dist.scripts.after_release)
            self.distribution = run

            self.runner.bump(list(dist.pkg_files or ()), version)
            hooked = self._hook(dist.scripts.before_stage)
            if isinstance(hooked, Err):
                self._fail(run, "before_stage")
                return hooked
            dist_git.stage_dir()

            state = dist_git.init()
            dist_git.handle_tag_options(self.git)

            attached = self._collaborators(run, remote_url=state.remote_url, cwd=checkout)
            if isinstance(attached, Err):
                self._fail(run, "start")
                return attached

            run.state = "staged"
            released = self._release(run)
            if isinstance(released, Err):
                return released
            run.state = "released"
        return Ok(None)

    def _dist_placeholder(self, stage_dir: Path) -> PipelineRun:
        if self.distribution is None:
            client = DistGitClient(
                self.config.dist.git,
                runner=self.runner,
                console=self._console,
                cwd=self.root / stage_dir,
                explicit_keys=self.config.dist.explicit_git_keys,
            )
            self.distribution = PipelineRun(label="distribution", git=client)
        return self.distribution
