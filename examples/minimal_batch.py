import os

from dotenv import load_dotenv

from bulkproc import run_bulk_sync


def main() -> None:
    # Load environment variables from .env if present
    load_dotenv()

    if not os.getenv("DEEPSEEK_API_KEY"):
        raise RuntimeError(
            "DEEPSEEK_API_KEY is not set. Please set it in your environment or .env file."
        )

    payload = {
        "documents": [
            {
                "id": "q3-update",
                "name": "q3_update.txt",
                "content": (
                    "Revenue grew 12% year-over-year to $48M. Operating margin "
                    "narrowed to 9% on higher cloud hosting costs."
                ),
            },
            {
                "id": "hiring",
                "name": "hiring_plan.txt",
                "content": "Engineering headcount will grow from 40 to 55 by year end.",
            },
            {"id": "blank", "name": "blank.txt", "content": ""},
        ],
        "task": "summarize",
        "concurrency": 2,
    }

    print("▶ Running minimal bulk batch...")
    outcome = run_bulk_sync(payload)

    for result in outcome.results:
        print(f"\n[{result.status.value}] {result.filename}")
        if result.result:
            print(result.result)
        elif result.error:
            print(f"  {result.error}")

    summary = outcome.summary
    print(
        f"\n{summary.successful}/{summary.total} successful, "
        f"{summary.skipped} skipped, cost ${summary.total_cost:.6f}"
    )


if __name__ == "__main__":
    main()
