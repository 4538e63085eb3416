# autoplay.py
from __future__ import annotations
import argparse, os, json, random, datetime, logging
from typing import Any, Dict, Optional
from survey_core.catalog import load_catalog
from survey_core.persistence import InMemoryBackend
from survey_core.session import SurveySession
from survey_core.config import SLIDER_RANGE

# free-text answers per profile
TEXT_BY_PROFILE: Dict[str, str] = {
    "thorough": ("I have gone back and forth on this. Local communities usually understand their own needs, "
                 "but some problems only make sense at a national scale, so I weigh each case on evidence."),
    "hurried": "not sure",
    "uncertain": "I feel like it depends and I honestly do not know yet.",
}

# (confidence range, response time range in ms) per profile
PACE: Dict[str, tuple[tuple[int, int], tuple[int, int]]] = {
    "thorough": ((4, 5), (45_000, 70_000)),
    "hurried": ((2, 4), (3_000, 9_000)),
    "uncertain": ((1, 2), (15_000, 30_000)),
}


def _value_for(q: Any, profile: str, rng: random.Random) -> Any:
    if q.type == "scale":
        lo, hi = int(q.scale_min or 1), int(q.scale_max or 5)
        return 3 if profile == "uncertain" else rng.randint(lo, hi)
    if q.type == "binary":
        return rng.random() < 0.5
    if q.type == "multiChoice":
        return rng.choice(list(q.options))
    if q.type == "ranking":
        order = list(q.options); rng.shuffle(order); return order
    if q.type == "slider":
        lo = q.scale_min if q.scale_min is not None else SLIDER_RANGE[0]
        hi = q.scale_max if q.scale_max is not None else SLIDER_RANGE[1]
        return round(rng.uniform(lo, hi), 1)
    return TEXT_BY_PROFILE[profile]


def run(profile: str, seed: Optional[int], out_dir: str = "reports") -> Dict[str, Any]:
    rng = random.Random(seed or 1234)
    sess = SurveySession(InMemoryBackend(load_catalog()), autosave=False)
    (clo, chi), (tlo, thi) = PACE[profile]

    answered = 0
    while not sess.is_complete():
        q = sess.current_question()
        # hurried players only answer what blocks them
        if profile == "hurried" and not q.required:
            res = sess.smart_skip()
            if res.ok: continue
        out = sess.save_response(_value_for(q, profile, rng), rng.randint(clo, chi), rng.randint(tlo, thi))
        if not out.accepted:
            raise RuntimeError(f"Driver produced an invalid answer for {q.id}: {out.error}")
        answered += 1
        sess.advance()
    if answered <= 0: raise RuntimeError("Driver answered 0 questions.")

    result = {
        "profile": profile,
        "answered": answered,
        "review": sess.review(),
        "personalization": sess.personalization()["context"],
        "navigation": sess.navigation(),
    }
    fin = sess.finalize()
    result["finalized"] = fin.finalized
    sess.close()

    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, f"auto_{profile}_{ts}.json")
    with open(path, "w", encoding="utf-8") as f: json.dump(result, f, indent=2)
    print(f"Report: {path}  (ready={result['review']['readyToFinalize']}, "
          f"engagement={result['personalization']['engagementLevel']})")
    return result


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--profile", choices=sorted(PACE), default="thorough")
    ap.add_argument("--seed", type=int, default=1337)
    ap.add_argument("--out", default="reports")
    a = ap.parse_args()
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
    run(a.profile, a.seed, a.out)

if __name__ == "__main__":
    main()
