# demo_serfix.py
import argparse, logging, time
from serfix import fix, fix_traced

# serialize() output of a small user record, then a few ways it gets broken
VALID = (
    b'a:4:{s:4:"name";s:11:"Taha Yacine";s:4:"tags";a:2:{i:0;s:6:"python";i:1;s:2:"ml";}'
    b's:3:"gpa";d:18.6;s:6:"active";b:1;}'
)

SAMPLES = {
    "valid": VALID,
    "re-encoded": b's:11:"' + "Tâhâ Yacine".encode("utf-8") + b'";',
    "truncated": VALID[:60],
    "junk value": b'a:2:{i:0;s:4:"fish";i:1;X:what is this}',
    "wrong count": b'a:5:{i:0;s:4:"fish";i:1;s:7:"balloon";}',
    "object": b'O:8:"stdClass":3:{s:3:"foo";s:3:"bar";}',
    "custom object": b'C:11:"ArrayObject":3:{x:i:0;}',
}

def size_bytes(x):
    return len(x)

def run_demo(samples=SAMPLES):
    for label, raw in samples.items():
        start = time.time()
        fixed, trace = fix_traced(raw)
        t_fix = time.time() - start
        print(f"[{label}]")
        print("  input: ", raw)
        print("  output:", fixed)
        print("  bytes in/out: %d/%d, leftover: %d (fix time: %.5fs)"
              % (size_bytes(raw), size_bytes(fixed), size_bytes(trace.leftover), t_fix))
        assert fix(fixed) == fixed, "Repaired output is not stable!"
    print("Idempotence check: OK")

def main(argv=None):
    ap = argparse.ArgumentParser(description="Repair a set of corrupted PHP serialize() samples")
    ap.add_argument("--verbose", action="store_true", help="log the debug trace of every repair")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")
    if args.verbose:
        for raw in SAMPLES.values():
            fix(raw, debug=True)
    run_demo()

if __name__ == "__main__":
    main()
