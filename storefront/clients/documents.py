"""
GraphQL Documents

Query and mutation documents sent to the ShopJoy ``/graphql`` endpoint.

Each document declares ``fields``: for a query, the root fields whose
results it caches; for a mutation, the root fields whose cached results it
invalidates.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Document:
    name: str
    text: str
    fields: Tuple[str, ...] = ()
    is_mutation: bool = False


_ORDER_ITEM_FIELDS = """
        orderItems {
          orderItemId
          productId
          productName
          quantity
          unitPrice
          subtotal
        }"""

_PAGE_INFO = """
      pageInfo {
        page
        size
        totalElements
        totalPages
      }"""


# =============================================================================
# QUERIES
# =============================================================================

GET_ORDERS = Document(
    name="GetOrders",
    fields=("orders",),
    text="""
  query GetOrders(
    $userId: ID
    $filter: OrderFilterInput
    $page: Int
    $size: Int
    $sortBy: String
    $sortDirection: String
  ) {
    orders(
      userId: $userId
      filter: $filter
      page: $page
      size: $size
      sortBy: $sortBy
      sortDirection: $sortDirection
    ) {
      orders {
        orderId
        userId
        totalAmount
        status
        paymentStatus
        orderDate
        shippingAddress
        paymentMethod
        notes
        user {
          firstName
          lastName
          email
        }""" + _ORDER_ITEM_FIELDS + """
      }""" + _PAGE_INFO + """
    }
  }
""",
)

GET_ORDER_BY_ID = Document(
    name="GetOrderById",
    fields=("order",),
    text="""
  query GetOrderById($id: ID!) {
    order(id: $id) {
      orderId
      userId
      totalAmount
      status
      paymentStatus
      orderDate
      shippingAddress
      paymentMethod
      notes
      user {
        firstName
        lastName
        email
        phone
      }""" + _ORDER_ITEM_FIELDS + """
    }
  }
""",
)

GET_PRODUCTS = Document(
    name="GetProducts",
    fields=("products",),
    text="""
  query GetProducts(
    $filter: ProductFilterInput
    $page: Int
    $size: Int
    $sortBy: String
    $sortDirection: String
  ) {
    products(
      filter: $filter
      page: $page
      size: $size
      sortBy: $sortBy
      sortDirection: $sortDirection
    ) {
      products {
        productId
        productName
        description
        price
        sku
        brand
        imageUrl
        isActive
        stockQuantity
        reorderLevel
        category {
          categoryId
          categoryName
        }
        createdAt
      }""" + _PAGE_INFO + """
    }
  }
""",
)

GET_CATEGORIES = Document(
    name="GetCategories",
    fields=("categories",),
    text="""
  query GetCategories {
    categories {
      categoryId
      categoryName
      description
    }
  }
""",
)

GET_USERS = Document(
    name="GetUsers",
    fields=("users",),
    text="""
  query GetUsers($page: Int, $size: Int) {
    users(page: $page, size: $size) {
      users {
        userId
        username
        email
        firstName
        lastName
        userType
        createdAt
      }""" + _PAGE_INFO + """
    }
  }
""",
)

GET_LOW_STOCK_PRODUCTS = Document(
    name="GetLowStockProducts",
    fields=("lowStockProducts",),
    text="""
  query GetLowStockProducts {
    lowStockProducts {
      inventoryId
      stockQuantity
      reservedQuantity
      reorderLevel
      product {
        productId
        productName
        price
      }
    }
  }
""",
)


# =============================================================================
# MUTATIONS
# =============================================================================

UPDATE_ORDER_STATUS = Document(
    name="UpdateOrderStatus",
    fields=("orders", "order"),
    is_mutation=True,
    text="""
  mutation UpdateOrderStatus($id: ID!, $status: String!) {
    updateOrderStatus(id: $id, status: $status) {
      orderId
      status
      paymentStatus
      orderDate
      totalAmount
    }
  }
""",
)

UPDATE_ORDER = Document(
    name="UpdateOrder",
    fields=("orders", "order"),
    is_mutation=True,
    text="""
  mutation UpdateOrder($id: ID!, $input: UpdateOrderInput!) {
    updateOrder(id: $id, input: $input) {
      orderId
      status
      shippingAddress
      paymentMethod
      notes
      totalAmount
    }
  }
""",
)

DELETE_ORDER = Document(
    name="DeleteOrder",
    fields=("orders", "order"),
    is_mutation=True,
    text="""
  mutation DeleteOrder($id: ID!) {
    deleteOrder(id: $id)
  }
""",
)

CREATE_ORDER = Document(
    name="CreateOrder",
    fields=("orders", "lowStockProducts"),
    is_mutation=True,
    text="""
  mutation CreateOrder($input: CreateOrderInput!) {
    createOrder(input: $input) {
      orderId
      userId
      totalAmount
      status
      paymentStatus
      orderDate
    }
  }
""",
)

CREATE_PRODUCT = Document(
    name="CreateProduct",
    fields=("products", "categories"),
    is_mutation=True,
    text="""
  mutation CreateProduct($input: CreateProductInput!) {
    createProduct(input: $input) {
      productId
      productName
      description
      price
      category {
        categoryId
        categoryName
      }
      createdAt
    }
  }
""",
)

UPDATE_PRODUCT = Document(
    name="UpdateProduct",
    fields=("products",),
    is_mutation=True,
    text="""
  mutation UpdateProduct($id: ID!, $input: UpdateProductInput!) {
    updateProduct(id: $id, input: $input) {
      productId
      productName
      description
      price
      category {
        categoryId
        categoryName
      }
    }
  }
""",
)

DELETE_PRODUCT = Document(
    name="DeleteProduct",
    fields=("products", "lowStockProducts"),
    is_mutation=True,
    text="""
  mutation DeleteProduct($id: ID!) {
    deleteProduct(id: $id)
  }
""",
)

CREATE_CATEGORY = Document(
    name="CreateCategory",
    fields=("categories",),
    is_mutation=True,
    text="""
  mutation CreateCategory($input: CreateCategoryInput!) {
    createCategory(input: $input) {
      categoryId
      categoryName
      description
    }
  }
""",
)

UPDATE_CATEGORY = Document(
    name="UpdateCategory",
    fields=("categories", "products"),
    is_mutation=True,
    text="""
  mutation UpdateCategory($id: ID!, $input: UpdateCategoryInput!) {
    updateCategory(id: $id, input: $input) {
      categoryId
      categoryName
      description
    }
  }
""",
)

DELETE_CATEGORY = Document(
    name="DeleteCategory",
    fields=("categories", "products"),
    is_mutation=True,
    text="""
  mutation DeleteCategory($id: ID!) {
    deleteCategory(id: $id)
  }
""",
)

ADD_TO_CART = Document(
    name="AddToCart",
    fields=("cartItems",),
    is_mutation=True,
    text="""
  mutation AddToCart($userId: ID!, $productId: ID!, $quantity: Int!) {
    addToCart(userId: $userId, productId: $productId, quantity: $quantity) {
      cartItemId
      quantity
      product {
        productId
        productName
        price
      }
      addedAt
    }
  }
""",
)

REMOVE_FROM_CART = Document(
    name="RemoveFromCart",
    fields=("cartItems",),
    is_mutation=True,
    text="""
  mutation RemoveFromCart($cartItemId: ID!) {
    removeFromCart(cartItemId: $cartItemId)
  }
""",
)

_STOCK_FIELDS = """
      inventoryId
      stockQuantity
      reservedQuantity
      reorderLevel
      product {
        productId
        productName
      }"""

UPDATE_STOCK = Document(
    name="UpdateStock",
    fields=("lowStockProducts", "products"),
    is_mutation=True,
    text="""
  mutation UpdateStock($productId: ID!, $quantity: Int!) {
    updateStock(productId: $productId, quantity: $quantity) {""" + _STOCK_FIELDS + """
    }
  }
""",
)

RESERVE_STOCK = Document(
    name="ReserveStock",
    fields=("lowStockProducts",),
    is_mutation=True,
    text="""
  mutation ReserveStock($productId: ID!, $quantity: Int!) {
    reserveStock(productId: $productId, quantity: $quantity) {""" + _STOCK_FIELDS + """
    }
  }
""",
)

RELEASE_STOCK = Document(
    name="ReleaseStock",
    fields=("lowStockProducts",),
    is_mutation=True,
    text="""
  mutation ReleaseStock($productId: ID!, $quantity: Int!) {
    releaseStock(productId: $productId, quantity: $quantity) {""" + _STOCK_FIELDS + """
    }
  }
""",
)
