"""
Memory and goal arena for NPCs.

Memories and goals are stored here, indexed by NPC id, instead of on the
NPC records themselves. Each NPC's memory list has a fixed capacity; when
it is full the oldest non-significant memory goes first, and only when
every memory is significant does the oldest significant one go.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .schema import GoalType


class NPCMemory(BaseModel):
    """Something an NPC remembers."""
    kind: str  # "schemed_against", "promoted", "was_supported", ...
    description: str
    turn: int
    significant: bool = False
    salience: int = 100  # Faded memories reach 0 and are forgotten
    subject_id: str | None = None


class NPCGoal(BaseModel):
    """A goal an NPC is pursuing."""
    goal_type: GoalType
    priority: int = 50        # 1-100
    progress: int = 0         # 0-100
    frustration: int = 0      # Grows while the goal is passed over
    created_turn: int = 0
    target_id: str | None = None

    @property
    def effective_priority(self) -> int:
        """Priority raised by accumulated frustration."""
        return self.priority + self.frustration // 5

    @property
    def is_complete(self) -> bool:
        return self.progress >= 100


class MemoryArena(BaseModel):
    """Bounded per-NPC storage for memories and goals."""
    memory_capacity: int = 8
    goal_capacity: int = 4
    memories: dict[str, list[NPCMemory]] = Field(default_factory=dict)
    goals: dict[str, list[NPCGoal]] = Field(default_factory=dict)

    # ─── Memories ───────────────────────────────────────────

    def memories_of(self, npc_id: str) -> list[NPCMemory]:
        return self.memories.setdefault(npc_id, [])

    def remember(self, npc_id: str, memory: NPCMemory, reinforcement: int = 25) -> NPCMemory:
        """
        Record a memory, reinforcing an existing one of the same kind.

        Returns the stored memory (either the reinforced one or the new one).
        """
        existing = self.memories_of(npc_id)
        for old in existing:
            if old.kind == memory.kind and old.subject_id == memory.subject_id:
                old.salience = min(100, old.salience + reinforcement)
                old.turn = memory.turn
                old.description = memory.description
                old.significant = old.significant or memory.significant
                return old

        if len(existing) >= self.memory_capacity:
            self._evict(existing)
        existing.append(memory)
        return memory

    def _evict(self, memories: list[NPCMemory]) -> NPCMemory:
        """Drop the oldest non-significant memory, else the oldest overall."""
        candidates = [m for m in memories if not m.significant] or memories
        oldest = min(candidates, key=lambda m: m.turn)
        memories.remove(oldest)
        return oldest

    def fade(self, npc_id: str, decay: int) -> list[NPCMemory]:
        """
        Decay salience of non-significant memories.

        Returns the memories that were forgotten.
        """
        kept, forgotten = [], []
        for memory in self.memories_of(npc_id):
            if not memory.significant:
                memory.salience = max(0, memory.salience - decay)
            (forgotten if memory.salience == 0 else kept).append(memory)
        self.memories[npc_id] = kept
        return forgotten

    # ─── Goals ──────────────────────────────────────────────

    def goals_of(self, npc_id: str) -> list[NPCGoal]:
        return self.goals.setdefault(npc_id, [])

    def has_goal(self, npc_id: str, goal_type: GoalType) -> bool:
        return any(g.goal_type == goal_type for g in self.goals_of(npc_id))

    def add_goal(self, npc_id: str, goal: NPCGoal) -> bool:
        """Add a goal if there is room and no goal of that type exists."""
        goals = self.goals_of(npc_id)
        if len(goals) >= self.goal_capacity or self.has_goal(npc_id, goal.goal_type):
            return False
        goals.append(goal)
        return True

    def drop_goal(self, npc_id: str, goal: NPCGoal) -> None:
        goals = self.goals_of(npc_id)
        if goal in goals:
            goals.remove(goal)

    def forget_npc(self, npc_id: str) -> None:
        """Release everything held for an NPC that left the world."""
        self.memories.pop(npc_id, None)
        self.goals.pop(npc_id, None)
