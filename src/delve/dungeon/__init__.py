from .cardinals import Cardinal
from .cells import Cell, CellKind
from .grid import TileGrid
from .map_data import CellSnapshot, MapData
from .generator import MapGenerator, generate_map

__all__ = ["Cardinal", "Cell", "CellKind", "TileGrid", "CellSnapshot", "MapData", "MapGenerator", "generate_map"]
