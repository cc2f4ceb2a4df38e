"""
Web Flow Agent - 基于 Playwright 的网页流程执行器

两种模式：
  1. plan  - 把自然语言流程解析成计划后按顺序执行，结束后校验计划与执行记录
  2. agent - 每一步由决策函数（rules / llm / http / interactive）决定下一步

运行示例：
    python run_flow.py --flow "navigate to example.com then click More information"
    python run_flow.py --mode agent --flow "go to example.com, wait for network"
    python run_flow.py --instructions "goto https://example.com" "fill #q {query}" --var query=playwright
"""

import argparse
import asyncio
import json
import logging
import sys

from playwright.async_api import async_playwright

from flow_agent import FlowRunner, Settings, create_decider, ensure_executable, parse_plan, validate
from flow_agent.logging_config import setup_logging

logger = logging.getLogger("flow_agent.run")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a web flow with Playwright")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--flow", help="natural-language flow description")
    source.add_argument("--instructions", nargs="+", help="tokenized instructions, e.g. 'click Login'")
    parser.add_argument("--var", action="append", default=[], help="variable for instructions, name=value")
    parser.add_argument("--url", help="start URL opened before the flow")
    parser.add_argument("--mode", choices=("plan", "agent"), default="plan")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    runner = FlowRunner(settings)
    variables = dict(item.split("=", 1) for item in args.var if "=" in item)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.headless)
        page = await browser.new_page()
        try:
            if args.url:
                await page.goto(args.url, wait_until="load")

            if args.instructions:
                plan = ensure_executable(parse_plan(args.instructions, variables))
                result = await runner.run(page, plan)
            elif args.mode == "agent":
                result = await runner.run_agent(page, args.flow, create_decider(settings))
                plan = None
            else:
                plan = ensure_executable(parse_plan(args.flow))
                result = await runner.run(page, plan)
        finally:
            await browser.close()

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    if plan is not None:
        validation = validate(plan, result.history)
        if not validation.success:
            for error in validation.errors:
                logger.error("校验失败: %s", error)
            return 1
        logger.info("✓ 计划校验通过")
    return 0


def main(argv=None) -> int:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    args = parse_args(argv)
    try:
        return asyncio.run(run(args, settings))
    except Exception as e:
        logger.error("❌ %s: %s", type(e).__name__, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
