"""
Cart reconciliation engine.

Keeps the in-memory cart, the client-local copy and the server-persisted cart of
the signed-in user in step:

- Mutations are synchronous state transitions (see `state`) applied to memory
  and local storage right away; the server sync is dispatched afterwards as a
  separate asyncio task.
- One sync task per (product_id, variant_id) key at most. A mutation on a key
  whose task is still running only marks the key dirty; the running task then
  sends one more call carrying the latest absolute state.
- Sync failures are logged and never roll back the optimistic change.
  `refresh()` re-reads the authoritative server cart.
- A key whose server quantity is uncertain (failed fetch, or a write whose
  outcome is unknown) is re-read from the server before the next write to it.
"""
import asyncio
from decimal import Decimal
from typing import Awaitable, Dict, Iterable, List, Optional, Set, TypeVar

from storefront.logging import get_logger, sanitize_id_for_logging
from . import state
from .models import CartKey, CartLine, make_key
from .remote import CartStore
from .storage import LocalCartStorage

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_SYNC_TIMEOUT = 10.0


class CartSync:
    """
    Shopper's cart for one client session.

    Create one instance per session and hand it to whatever needs the cart.
    """

    def __init__(self, storage: LocalCartStorage, *, sync_timeout: Optional[float] = DEFAULT_SYNC_TIMEOUT):
        self._storage = storage
        self._sync_timeout = sync_timeout

        self._lines: state.Lines = {}
        self._user_id: Optional[str] = None
        self._store: Optional[CartStore] = None
        self._loaded_for: Optional[str] = None
        self.is_loading = False

        # Bumped on every identity change; tasks from an older generation stop
        self._generation = 0
        # Last quantity the server acknowledged per key
        self._server: Dict[CartKey, int] = {}
        # False until a server fetch succeeded for the current identity
        self._server_known = False
        # Keys whose last write failed without a known outcome
        self._unconfirmed: Set[CartKey] = set()
        self._inflight: Dict[CartKey, asyncio.Task] = {}
        self._dirty: Set[CartKey] = set()
        # Keys mutated while load() was fetching
        self._deferred: Set[CartKey] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._load_task: Optional[asyncio.Task] = None
        self._load_generation: Optional[int] = None

    # ==================== READ ====================

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._store is not None

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def get_line(self, product_id: str, variant_id: str) -> Optional[CartLine]:
        return self._lines.get(make_key(product_id, variant_id))

    def quantity_of(self, product_id: str, variant_id: str) -> int:
        line = self.get_line(product_id, variant_id)
        return line.quantity if line else 0

    def total_item_count(self) -> int:
        return state.total_quantity(self._lines)

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), Decimal("0"))

    def inflight_keys(self) -> Set[CartKey]:
        return set(self._inflight)

    # ==================== IDENTITY ====================

    async def sign_in(self, user_id: str, store: CartStore) -> None:
        """Bind an authenticated identity and merge its server cart once."""
        if self._user_id != user_id:
            if self._user_id is not None:
                await self.sign_out()
            self._user_id = user_id
            self._generation += 1
        self._store = store
        await self.load()

    async def sign_out(self) -> None:
        """Forget the identity and wipe local cart state. Server rows are kept."""
        if self._user_id is not None:
            logger.info(f"Cart signed out for user {sanitize_id_for_logging(self._user_id)}")
        self._user_id = None
        self._store = None
        self._loaded_for = None
        self._reset_sync_state()
        self._lines = {}
        self._storage.clear()
        self.is_loading = False

    async def on_auth_state_change(self, user_id: Optional[str], store: Optional[CartStore] = None) -> None:
        """Auth listener: sign in on a new identity, sign out when it goes away."""
        if user_id is None:
            await self.sign_out()
            return
        if store is None:
            raise ValueError("store is required for a signed-in user")
        if user_id == self._user_id:
            # Token refresh or a repeated event for the same user: keep the cart,
            # send from now on with the fresh credentials
            self._store = store
            if self._loaded_for != user_id:
                await self.load()
            return
        await self.sign_in(user_id, store)

    # ==================== LIFECYCLE ====================

    async def load(self) -> None:
        """
        Establish the cart for the current identity.

        Anonymous sessions hydrate from local storage. Signed-in sessions merge
        the server cart with the local one (server wins on overlap) and push the
        difference back. Concurrent calls share a single run.
        """
        running = self._load_task
        if running is None or running.done() or self._load_generation != self._generation:
            self._load_generation = self._generation
            self._load_task = asyncio.create_task(self._load(self._generation))
        await asyncio.shield(self._load_task)

    async def _load(self, generation: int) -> None:
        store = self._store
        user_id = self._user_id

        if not self._lines:
            self._lines = state.index_lines(self._storage.load())

        if store is None:
            return

        self.is_loading = True
        self._deferred.clear()
        try:
            server_lines = await self._call(store.fetch())
        except Exception as e:
            logger.error(
                f"Error loading cart for user {sanitize_id_for_logging(user_id)}, "
                f"using local cart: {e}"
            )
            if self._generation == generation:
                self.is_loading = False
                self._deferred.clear()
                self._server = {}
                self._server_known = False
            return

        if self._generation != generation:
            # Identity changed while fetching
            return

        server = state.index_lines(server_lines)
        merged = state.merge_lines(server_lines, self._lines.values())
        for key in self._deferred:
            line = self._lines.get(key)
            if line is not None:
                merged[key] = line
            else:
                merged.pop(key, None)

        self._lines = merged
        self._accept_server(server_lines)
        self._persist()
        self.is_loading = False

        plan = state.plan_sync(merged, server)
        keys = {line.key for line in plan.inserts + plan.updates} | set(plan.deletes) | self._deferred
        self._deferred.clear()
        if keys:
            logger.info(
                f"Cart merge for user {sanitize_id_for_logging(user_id)}: "
                f"{len(plan.inserts)} new, {len(plan.updates)} changed, {len(plan.deletes)} removed"
            )
            await self._wait_for_keys(self._schedule_many(keys))

        self._loaded_for = user_id

    async def refresh(self) -> None:
        """Replace the cart with the server copy (no merge). Signed-in only."""
        store = self._store
        if store is None:
            return

        generation = self._generation
        await self.flush()
        try:
            server_lines = await self._call(store.fetch())
        except Exception as e:
            logger.error(f"Error refreshing cart: {e}")
            return

        if self._generation != generation:
            return
        self._lines = state.index_lines(server_lines)
        self._accept_server(server_lines)
        self._persist()

    async def clear(self) -> None:
        """
        Empty the cart everywhere.

        Server lines are deleted one by one; a failed delete is logged and the
        rest still go out.
        """
        self._lines = {}
        self._storage.clear()

        store = self._store
        if store is None:
            self._server = {}
            return

        generation = self._generation
        try:
            server_lines = await self._call(store.fetch())
        except Exception as e:
            logger.warning(f"Could not fetch cart before clearing, using known lines: {e}")
        else:
            if self._generation != generation:
                return
            self._accept_server(server_lines)

        keys = set(self._server) | self._unconfirmed
        await self._wait_for_keys(self._schedule_many(keys))

    async def flush(self) -> None:
        """Wait until no sync task is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ==================== MUTATIONS ====================

    def add_line(self, product_id: str, variant_id: str, **display) -> CartLine:
        """
        Add one unit of a variant.

        `display` carries snapshot fields for rendering (product_name,
        variant_name, price, discount_percent, image_url, ...).
        """
        line = CartLine(product_id=product_id, variant_id=variant_id, quantity=1, **display)
        self._apply(state.add_line(self._lines, line))
        self._schedule(line.key)
        return self._lines[line.key]

    def set_quantity(self, product_id: str, variant_id: str, quantity: int) -> None:
        """Set an absolute quantity; quantity <= 0 removes the line."""
        if quantity <= 0:
            self.remove_line(product_id, variant_id)
            return

        key = make_key(product_id, variant_id)
        if key not in self._lines:
            return
        self._apply(state.set_quantity(self._lines, key, quantity))
        self._schedule(key)

    def remove_line(self, product_id: str, variant_id: str) -> None:
        """Remove a line. Removing an absent line does nothing."""
        key = make_key(product_id, variant_id)
        if key not in self._lines:
            return
        self._apply(state.remove_line(self._lines, key))
        self._schedule(key)

    def _apply(self, lines: state.Lines) -> None:
        self._lines = lines
        self._persist()

    def _persist(self) -> None:
        self._storage.save(self.lines)

    # ==================== SERVER SYNC ====================

    def _schedule(self, key: CartKey) -> Optional[asyncio.Task]:
        """Make sure a sync task will bring `key` on the server up to date."""
        if self._store is None:
            return None

        if self.is_loading:
            self._deferred.add(key)
            return None

        running = self._inflight.get(key)
        if running is not None:
            self._dirty.add(key)
            return running

        try:
            task = asyncio.get_running_loop().create_task(self._sync_key(key, self._generation))
        except RuntimeError:
            logger.warning(f"No running event loop, cart sync skipped for {key}")
            return None

        self._inflight[key] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _schedule_many(self, keys: Iterable[CartKey]) -> List[asyncio.Task]:
        tasks = []
        for key in keys:
            task = self._schedule(key)
            if task is not None:
                tasks.append(task)
        return tasks

    async def _wait_for_keys(self, tasks: List[asyncio.Task]) -> None:
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _sync_key(self, key: CartKey, generation: int) -> None:
        """Send the current state of one key until nothing changed meanwhile."""
        task = asyncio.current_task()
        try:
            while self._generation == generation and self._store is not None:
                self._dirty.discard(key)
                await self._send(key, generation)
                if key not in self._dirty:
                    break
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]
                self._dirty.discard(key)

    def _is_uncertain(self, key: CartKey) -> bool:
        if key in self._unconfirmed:
            return True
        return not self._server_known and key not in self._server

    async def _check_server(self, key: CartKey, store: CartStore, generation: int) -> bool:
        """Re-read the server quantity of `key`. False if it is still unknown."""
        product_id, variant_id = key
        try:
            server_lines = await self._call(store.fetch())
        except Exception as e:
            logger.warning(f"Cart sync: could not check item {product_id}/{variant_id}: {e}")
            return False

        if self._generation != generation:
            return False
        server_line = state.index_lines(server_lines).get(key)
        if server_line is None:
            self._server.pop(key, None)
        else:
            self._server[key] = server_line.quantity
        self._unconfirmed.discard(key)
        return True

    async def _send(self, key: CartKey, generation: int) -> None:
        store = self._store
        if self._is_uncertain(key) and not await self._check_server(key, store, generation):
            return

        product_id, variant_id = key
        line = self._lines.get(key)
        server_quantity = self._server.get(key)

        if line is None:
            if server_quantity is None:
                return
            action = "remove"
            call = store.delete(product_id, variant_id)
        elif server_quantity is None:
            action = "add"
            call = store.upsert(product_id, variant_id, line.quantity)
        elif server_quantity != line.quantity:
            action = "update"
            call = store.update(product_id, variant_id, line.quantity)
        else:
            return

        try:
            await self._call(call)
        except asyncio.TimeoutError:
            logger.warning(f"Cart sync: timed out trying to {action} item {product_id}/{variant_id}")
            self._mark_unconfirmed(key, generation)
            return
        except Exception as e:
            logger.warning(f"Cart sync: failed to {action} item {product_id}/{variant_id}: {e}")
            self._mark_unconfirmed(key, generation)
            return

        if self._generation != generation:
            return
        if line is None:
            self._server.pop(key, None)
        else:
            self._server[key] = line.quantity

    def _mark_unconfirmed(self, key: CartKey, generation: int) -> None:
        # The server may or may not have applied the write
        if self._generation == generation:
            self._unconfirmed.add(key)

    async def _call(self, call: Awaitable[T]) -> T:
        if self._sync_timeout is None:
            return await call
        return await asyncio.wait_for(call, self._sync_timeout)

    def _accept_server(self, server_lines: Iterable[CartLine]) -> None:
        self._server = {line.key: line.quantity for line in server_lines}
        self._server_known = True
        self._unconfirmed.clear()

    def _reset_sync_state(self) -> None:
        # Running tasks see the generation change and stop after their current call
        self._generation += 1
        self._inflight.clear()
        self._dirty.clear()
        self._deferred.clear()
        self._server = {}
        self._server_known = False
        self._unconfirmed.clear()
