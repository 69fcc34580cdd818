import asyncio
import sys
import time

from dotenv import load_dotenv
from loguru import logger

from if_agent_loop.app_config import load_json_config, parse_app_config, resolve_runtime_env
from if_agent_loop.bootstrap import bootstrap_runtime
from if_agent_loop.display import print_agent_report, print_workflow_report
from if_agent_loop.errors import ConfigurationError
from if_agent_loop.runner import compare_results, format_results_table, log_comparison


async def main() -> int:
    load_dotenv()

    try:
        app = parse_app_config(load_json_config())
        runtime = bootstrap_runtime(app, resolve_runtime_env())
    except ConfigurationError as ex:
        logger.error(f"Configuration error: {ex}")
        return 1

    if runtime.log_descriptions:
        logger.info(f"Logging: {', '.join(runtime.log_descriptions)}")
    logger.info(f"Game API: {runtime.game_client.base_url}")

    if runtime.agent_runner is not None:
        result = await runtime.agent_runner.run()
        print_agent_report(result)
        return 0

    workflows = runtime.workflows
    logger.info(f"Running {len(workflows)} workflow(s):")
    for workflow in workflows:
        logger.info(f"  - {workflow.display_name}")

    started = time.perf_counter()
    results = await runtime.workflow_runner.run_all()
    total_seconds = time.perf_counter() - started

    summary = compare_results(results)
    logger.info("Results:\n" + format_results_table(results))
    log_comparison(summary)
    print_workflow_report(results, summary, total_seconds)
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
