"""Graph workflow definition."""

from pydantic_graph import Graph

from shipline.core.config import State
from shipline.core.log import logger
from shipline.core.logdir import BuildLogDir
from shipline.runner.stage import StageRunner


def create_workflow():
    """Create the pipeline workflow graph.

    RunStage(checkout) → ... → RunStage(collectstatic) →
        BuildImage → Deploy → Report
    Any failing stage jumps straight to Report.

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Imported here so the graph can resolve the nodes' return
    # annotations from this namespace
    from shipline.workflow.nodes.deploy import Deploy
    from shipline.workflow.nodes.image import BuildImage
    from shipline.workflow.nodes.report import Report
    from shipline.workflow.nodes.stage import RunStage

    return Graph(
        nodes=(
            RunStage,
            BuildImage,
            Deploy,
            Report,
        ),
        state_type=State
    )


def prepare_build(state: State, clean: bool = True) -> BuildLogDir:
    """Create the build's log directory and stage runner.

    Args:
        state: State to attach the runner to
        clean: Start a fresh combined build log

    Returns:
        The build's log directory
    """
    config = state.config
    log_dir = BuildLogDir(
        config.log_root, config.job.name, config.job.build_number
    )
    if clean:
        log_dir.reset()

    state.runtime.pipeline.build_dir = log_dir.run_dir
    state.runtime.pipeline.stage_runner = StageRunner(
        config.pipeline.workdir, log_dir.run_dir
    )
    logger.info(
        "Build {job} #{build}",
        job=config.job.name,
        build=config.job.build_number,
        log_dir=str(log_dir.run_dir),
    )
    return log_dir
