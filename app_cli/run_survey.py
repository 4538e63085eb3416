
from __future__ import annotations
import os, json, datetime, logging, time
from survey_core.session import SurveySession
from survey_core.persistence import InMemoryBackend
from survey_core.catalog import load_catalog
from survey_core.config import load_config

HELP = "commands: b=back  s=skip  j <n>=jump  r=review  p=personalize  f=finalize  q=quit"


def parse_value(q, raw: str):
    if q.type == "scale":
        return int(raw) if raw.lstrip("-").isdigit() else raw
    if q.type == "binary":
        return {"y": True, "yes": True, "n": False, "no": False}.get(raw.lower(), raw)
    if q.type == "multiChoice":
        return q.options[int(raw)] if raw.isdigit() and int(raw) < len(q.options or ()) else raw
    if q.type == "ranking":
        idx = [p.strip() for p in raw.split(",") if p.strip()]
        if all(p.isdigit() and int(p) < len(q.options or ()) for p in idx):
            return [q.options[int(p)] for p in idx]
        return idx
    if q.type == "slider":
        try: return float(raw)
        except ValueError: return raw
    return raw


def prompt_for(q) -> str:
    head = f"[{q.section}] {q.text or q.id}" + ("  *" if q.required else "")
    if q.type == "scale":
        return f"{head}\n  (1-5, 1=strongly disagree, 5=strongly agree)"
    if q.type == "binary":
        return f"{head}\n  (y/n)"
    if q.type in ("multiChoice", "ranking"):
        lines = [head] + [f"  [{i}] {o}" for i, o in enumerate(q.options or ())]
        if q.type == "ranking": lines.append("  (comma separated order of indices)")
        return "\n".join(lines)
    if q.type == "slider":
        return f"{head}\n  ({q.scale_min or 0}-{q.scale_max or 100})"
    return head


def ask_confidence() -> int:
    v = input("Confidence 1-5 [3]: ").strip()
    return int(v) if v.isdigit() else 3


def main():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
    cfg = load_config()
    backend = InMemoryBackend(load_catalog(cfg.get("catalog_path")))
    session = SurveySession(backend, cfg=cfg, autosave=False)
    print("Survey v1 -", HELP)
    while True:
        q = session.current_question()
        if q is None:
            v = input("All questions visited. f=finalize, r=review, j <n>=jump back: ").strip()
        else:
            tip = session.policy.skip_recommendation(session.state)
            print(f"\n{session.current_index + 1}/{len(session.catalog)}  {prompt_for(q)}")
            if tip: print(f"  hint: {tip}")
            t0 = time.perf_counter(); v = input("> ").strip(); rt = time.perf_counter() - t0
        if v == "q": break
        if v == "b": session.retreat(); continue
        if v == "s":
            res = session.smart_skip()
            if not res.ok: print(res.message)
            continue
        if v.startswith("j "):
            arg = v[2:].strip()
            session.jump_to(int(arg) - 1) if arg.isdigit() else session.jump_to_section(arg)
            continue
        if v == "r":
            print(json.dumps(session.review(), indent=2)); continue
        if v == "p":
            print(json.dumps(session.personalization()["content"], indent=2)); continue
        if v == "f":
            out = session.finalize()
            if not out.finalized:
                print(out.notice)
                for issue in out.review["issues"]: print(f"  - {issue['title']}: {issue['description']}")
                continue
            os.makedirs("reports", exist_ok=True)
            ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
            path = os.path.join("reports", f"profile_{ts}.json")
            with open(path, "w", encoding="utf-8") as f: json.dump(out.profile, f, indent=2)
            print(f"Done. Profile saved to: {path}")
            break
        if q is None:
            continue
        res = session.save_response(parse_value(q, v), ask_confidence(), int(rt * 1000))
        if not res.accepted:
            print(f"  ! {res.error}"); continue
        session.advance()
    session.close()


if __name__ == "__main__": main()
