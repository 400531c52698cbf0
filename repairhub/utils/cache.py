"""Cache-Control presets for API responses."""

PRIVATE = {"type": "private", "max_age": 0, "must_revalidate": True}

def cache_headers(options: dict) -> dict:
    directives = [options.get("type", "private")]
    max_age = options.get("max_age", 0)
    stale = options.get("stale_while_revalidate", 0)

    if max_age > 0:
        directives.append(f"max-age={max_age}")
    else:
        directives.extend(["no-cache", "no-store"])
    if stale > 0:
        directives.append(f"stale-while-revalidate={stale}")
    if options.get("must_revalidate", True):
        directives.append("must-revalidate")

    headers = {"Cache-Control": ", ".join(directives)}
    if max_age == 0:
        headers["Pragma"] = "no-cache"
        headers["Expires"] = "0"
    return headers
