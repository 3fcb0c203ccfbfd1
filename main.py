import asyncio
import sys

from db.client import Database


async def main(workflow_name: str, argv: list) -> int:
    """Main entry point for running workflows with DB initialization."""
    if workflow_name == "ingest_hotelbeds":
        from workflows.ingest_hotelbeds import build_parser, ingest as run_workflow, run_dry
    elif workflow_name == "precompute_prices":
        from workflows.precompute_prices import build_parser, precompute as run_workflow
        run_dry = None
    else:
        print(f"Unknown workflow: {workflow_name}")
        return 1

    args = build_parser().parse_args(argv)
    if run_dry and getattr(args, "dry_run", False):
        return await run_dry(args)

    db = Database.from_env()
    await db.connect()
    try:
        return await run_workflow(args, db)
    finally:
        await db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python main.py <workflow_name> [workflow args]")
        sys.exit(1)

    workflow_name = sys.argv[1]
    sys.exit(asyncio.run(main(workflow_name, sys.argv[2:])))
