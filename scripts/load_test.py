"""
Load test for the citeforge API.
Samples quotes from the loaded document's page texts and fires POST /jump
requests to measure lookup latency and outcome mix.

A newer jump cancels an older one, so concurrency > 1 shows up as
'cancelled' outcomes rather than errors.

Usage:  python load_test.py [num_requests] [concurrency] [base_url]
"""
import json
import random
import sys
import time
import urllib.error
import urllib.request
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


def _get_json(url: str):
    with urllib.request.urlopen(url, timeout=30) as resp:
        return json.loads(resp.read())


def sample_quotes(base_url: str, count: int, words_per_quote: int = 8) -> list[dict]:
    pages = [p for p in _get_json(f"{base_url}/page-texts") if p.get("text")]
    if not pages:
        return []
    rng = random.Random(7)
    quotes = []
    for _ in range(count):
        page = rng.choice(pages)
        words = page["text"].split()
        if len(words) <= words_per_quote:
            quote = " ".join(words)
        else:
            start = rng.randrange(0, len(words) - words_per_quote)
            quote = " ".join(words[start:start + words_per_quote])
        # Page hints are often wrong upstream; mimic that half of the time.
        hint = page["page"] if rng.random() < 0.5 else max(1, page["page"] + rng.choice([-2, -1, 1, 2]))
        quotes.append({"quote": quote, "page": hint, "expected_page": page["page"]})
    return quotes


def send_jump(base_url: str, item: dict) -> dict:
    payload = json.dumps({"quote": item["quote"], "page": item["page"]}).encode()
    req = urllib.request.Request(
        f"{base_url}/jump",
        data=payload,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    start = time.perf_counter()
    try:
        with urllib.request.urlopen(req, timeout=60) as resp:
            data = json.loads(resp.read())
            latency = (time.perf_counter() - start) * 1000
            return {
                "success": True,
                "latency_ms": latency,
                "outcome": data.get("outcome"),
                "strategy": data.get("strategy"),
            }
    except (urllib.error.URLError, OSError, ValueError) as e:
        latency = (time.perf_counter() - start) * 1000
        return {"success": False, "latency_ms": latency, "error": str(e)}


def main():
    num_requests = int(sys.argv[1]) if len(sys.argv) > 1 else 20
    concurrency = int(sys.argv[2]) if len(sys.argv) > 2 else 1
    base_url = sys.argv[3].rstrip("/") if len(sys.argv) > 3 else DEFAULT_BASE_URL

    print(f"\n{'='*60}")
    print(f"  citeforge Load Test")
    print(f"  Requests: {num_requests}  |  Concurrency: {concurrency}")
    print(f"{'='*60}\n")

    quotes = sample_quotes(base_url, num_requests)
    if not quotes:
        print("  No page text available. Load a document with POST /documents first.")
        return

    results = []
    wall_start = time.perf_counter()

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        futures = [pool.submit(send_jump, base_url, item) for item in quotes]
        for f in as_completed(futures):
            r = f.result()
            status = r.get("outcome", "FAIL") if r["success"] else "FAIL"
            print(f"  [{status:>15}] {r['latency_ms']:>8.1f} ms  {r.get('strategy') or ''}")
            results.append(r)

    wall_elapsed = time.perf_counter() - wall_start

    # Summary.
    successes = [r for r in results if r["success"]]
    failures = [r for r in results if not r["success"]]
    latencies = [r["latency_ms"] for r in successes]
    outcomes = Counter(r.get("outcome") for r in successes)
    strategies = Counter(r.get("strategy") for r in successes if r.get("strategy"))

    print(f"\n{'='*60}")
    print(f"  RESULTS")
    print(f"{'='*60}")
    print(f"  Total requests:    {len(quotes)}")
    print(f"  Successful:        {len(successes)}")
    print(f"  Failed:            {len(failures)}")
    print(f"  Wall time:         {wall_elapsed:.2f} s")
    print(f"  Throughput:        {len(quotes) / wall_elapsed:.2f} req/s")
    if latencies:
        print(f"  Avg latency:       {sum(latencies)/len(latencies):.0f} ms")
        p50 = sorted(latencies)[len(latencies)//2]
        p95 = sorted(latencies)[int(len(latencies)*0.95)]
        print(f"  P50 latency:       {p50:.0f} ms")
        print(f"  P95 latency:       {p95:.0f} ms")
    print(f"  Outcomes:          {dict(outcomes)}")
    print(f"  Strategies:        {dict(strategies)}")
    print(f"{'='*60}\n")

    # Fetch server metrics.
    try:
        print("  Server /metrics snapshot:")
        print(json.dumps(_get_json(f"{base_url}/metrics"), indent=4))
    except (urllib.error.URLError, OSError, ValueError):
        pass


if __name__ == "__main__":
    main()
