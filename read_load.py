"""
read_load.py — simple async load script to follow redirects

Usage:
  python read_load.py --base http://127.0.0.1:8080 --in shortlinks_created.jsonl --count 15000 --concurrency 200
  python read_load.py --verify ...   # also check no access_count increment was lost

With --verify the script reads every key's access_count before and after the
run (GET /shortlinks/{short}) and compares the delta with the number of 307s
it received for that key.
"""
import argparse
import asyncio
import json
import random
import time
from collections import Counter
from datetime import datetime, timezone

import httpx

def _now_iso():
    return datetime.now(timezone.utc).isoformat()

def _load_shorts(path):
    shorts = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            s = obj.get("short")
            if s:
                shorts.append(s)
    return shorts

async def _hit_one(client: httpx.AsyncClient, base: str, short: str):
    try:
        r = await client.get(f"{base}/go/{short}", follow_redirects=False, timeout=10)
        return r.status_code == 307
    except httpx.HTTPError:
        return False

async def _access_counts(client: httpx.AsyncClient, base: str, shorts):
    counts = {}
    for short in shorts:
        r = await client.get(f"{base}/shortlinks/{short}", timeout=10)
        if r.status_code == 200:
            counts[short] = r.json()["access_count"]
    return counts

async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default="http://127.0.0.1:8080")
    parser.add_argument("--in", dest="shorts_file", default="shortlinks_created.jsonl")
    parser.add_argument("--count", type=int, default=15000)
    parser.add_argument("--concurrency", type=int, default=200)
    parser.add_argument("--verify", action="store_true", help="compare access_count deltas with 307s received")
    args = parser.parse_args()

    shorts = _load_shorts(args.shorts_file)
    if not shorts:
        print(f"No shortlinks found in {args.shorts_file}. Run write_load.py first.")
        return

    start_iso = _now_iso()
    success = 0
    hits = Counter()

    limit = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limit) as client:
        before = await _access_counts(client, args.base, set(shorts)) if args.verify else {}

        sem = asyncio.Semaphore(args.concurrency)

        async def _task(i):
            nonlocal success
            short = random.choice(shorts)
            async with sem:
                ok = await _hit_one(client, args.base, short)
                if ok:
                    success += 1
                    hits[short] += 1

        t0 = time.perf_counter()
        await asyncio.gather(*(_task(i) for i in range(args.count)))
        dt = time.perf_counter() - t0

        lost = 0
        if args.verify:
            after = await _access_counts(client, args.base, before.keys())
            for short, start in before.items():
                lost += max(0, hits[short] - (after.get(short, start) - start))

    end_iso = _now_iso()
    print(f"START: {start_iso}")
    print(f"END:   {end_iso}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   reads={args.count}, ok={success}, fail={args.count - success}")
    if dt > 0:
        print(f"RPS:   {success/dt:.1f} req/s")
    if args.verify:
        print(f"LOST INCREMENTS: {lost}")

if __name__ == "__main__":
    asyncio.run(main())
