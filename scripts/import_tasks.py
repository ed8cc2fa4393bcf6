# scripts/import_tasks.py
import asyncio
import json
import sys

from config import DATABASE_URL, load_settings
from rewardbot.database import crud
from rewardbot.database.db import init_db, make_engine, make_sessionmaker
from rewardbot.money import to_units

TASKS_FILE = "task_data.json"  # [{"description": "...", "reward": "0.025"}, ...]


async def load_tasks(path: str = TASKS_FILE):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    default_reward = load_settings().task_reward
    engine = make_engine(DATABASE_URL)
    await init_db(engine)
    async with make_sessionmaker(engine)() as session:
        for task in data:
            reward = to_units(task["reward"]) if "reward" in task else default_reward
            await crud.add_task(task["description"], reward, session)
        await session.commit()
    await engine.dispose()
    print(f"Imported {len(data)} tasks.")

if __name__ == "__main__":
    asyncio.run(load_tasks(*sys.argv[1:2]))
