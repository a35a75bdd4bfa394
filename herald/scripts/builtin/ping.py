"""
Description:
  Says pong when you say ping.

Commands:
  ping - replies pong
  brain - replies with the brain's user directory

Notes:
  Only registers listeners on the shell adapter.
"""

import json
import re


def setup(robot):
    if getattr(robot.adapter, "name", None) != "shell":
        return

    @robot.hear(re.compile(r"\bping\b", re.IGNORECASE))
    async def pong(res):
        await res.reply("pong")

    @robot.hear(re.compile(r"\bbrain\b", re.IGNORECASE))
    async def dump_brain(res):
        users = {uid: {"name": u.name, "room": u.room} for uid, u in robot.brain.users().items()}
        await res.reply(json.dumps(users))
