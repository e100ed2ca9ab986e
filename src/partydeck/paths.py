from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

USERDATA_ENV = "PARTYDECK_USERDATA"


@dataclass(frozen=True)
class Paths:
    repo_root: Path
    data_dir: Path
    schema_dir: Path
    userdata_dir: Path

    @property
    def cards_path(self) -> Path:
        return self.data_dir / "cards.json"

    @property
    def cards_schema_path(self) -> Path:
        return self.schema_dir / "cards.schema.json"


def get_paths() -> Paths:
    # src/partydeck/paths.py -> parents: [partydeck, src, repo_root]
    package_dir = Path(__file__).resolve().parent
    repo_root = package_dir.parents[1]
    data_dir = package_dir / "data"
    schema_dir = data_dir / "schemas"
    userdata_dir = Path(os.environ.get(USERDATA_ENV, repo_root / "userdata"))
    return Paths(
        repo_root=repo_root,
        data_dir=data_dir,
        schema_dir=schema_dir,
        userdata_dir=userdata_dir,
    )
