def define(control):
    store = control.store
    changes = control.change_set("release-1.1")

    pirates = {"Captain Jack Sparrow": "The Black Pearl"}
    changes.add(
        "init:pirates",
        lambda: store.hset("pirates", pirates),
        payload={"key": "pirates", "ships": pirates},
        # Only once the 1.0 registry exists.
        precondition=lambda: bool(store.hgetall("pirates")),
    )
    return changes
