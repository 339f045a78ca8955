"""
通用 CRUD 仓储

所有服务通过 BaseRepository[Model] 完成基础持久化与分页。
"""
import math
from dataclasses import dataclass
from typing import Generic, TypeVar, List, Optional, Type, Any, Dict
from sqlalchemy.orm import Session, Query

T = TypeVar('T')

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_paging(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """页码至少为 1，每页条数限制在 1..100"""
    page = max(1, page or 1)
    limit = limit or DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return page, limit


@dataclass
class Page(Generic[T]):
    """分页结果"""
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    def meta(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
            "has_next_page": self.has_next_page,
            "has_previous_page": self.has_previous_page,
        }

    def map(self, func) -> "Page":
        """转换每一项（如 ORM 对象 → 响应模型）"""
        return Page([func(i) for i in self.items], self.total, self.page, self.limit)

    def to_response(self, schema=None) -> Dict[str, Any]:
        """{data, meta} 响应"""
        items = self.items
        if schema is not None:
            items = [schema.model_validate(i) for i in items]
        return {"data": items, "meta": self.meta()}


class BaseRepository(Generic[T]):
    """
    泛型仓储，提供通用 CRUD 操作

    写操作只 flush 不 commit，事务由服务层控制。
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def query(self) -> Query:
        return self.db.query(self.model)

    def create(self, obj: T) -> T:
        self.db.add(obj)
        self.db.flush()
        return obj

    def get_by_id(self, id: int) -> Optional[T]:
        return self.query().filter(self.model.id == id).first()

    def find_one(self, **filters: Any) -> Optional[T]:
        """按字段等值查找单条记录"""
        query = self.query()
        for key, value in filters.items():
            query = query.filter(getattr(self.model, key) == value)
        return query.first()

    def paginate(self, query: Optional[Query] = None, page: int = 1,
                 limit: int = DEFAULT_PAGE_SIZE, order_by=None) -> Page[T]:
        """
        分页查询

        Args:
            query: 已带过滤条件的查询，缺省为全表
            page: 页码（从 1 开始）
            limit: 每页条数（最大 100）
            order_by: 排序表达式，缺省按 id 倒序
        """
        page, limit = normalize_paging(page, limit)
        query = query if query is not None else self.query()
        total = query.order_by(None).count()
        if order_by is None:
            order_by = self.model.id.desc()
        if not isinstance(order_by, (list, tuple)):
            order_by = [order_by]
        items = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
        return Page(items=items, total=total, page=page, limit=limit)

    def update(self, obj: T, data: Dict[str, Any]) -> T:
        """用字典更新对象（忽略模型上不存在的键）"""
        for key, value in data.items():
            if hasattr(obj, key):
                setattr(obj, key, value)
        self.db.flush()
        return obj

    def delete(self, obj: T) -> None:
        self.db.delete(obj)
        self.db.flush()

    def count(self, **filters: Any) -> int:
        query = self.query()
        for key, value in filters.items():
            query = query.filter(getattr(self.model, key) == value)
        return query.count()

    def exists(self, **filters: Any) -> bool:
        return self.count(**filters) > 0
